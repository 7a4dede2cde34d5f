import re

BOLD = re.compile(r"\*([^*\n]+)\*")
ITALIC = re.compile(r"_([^_\n]+)_")
STRIKE = re.compile(r"~([^~\n]+)~")
LIST_BREAKS = re.compile(r"<br>(?=</?ul>|<li>)|(?<=<ul>)<br>|(?<=</ul>)<br>|(?<=</li>)<br>")


def convert_markup_to_html(text: str) -> str:
    """
    Chat markup -> HTML for the web client.

    *bold* -> <strong>, _italic_ -> <em>, ~strike~ -> <del>,
    lines starting with "•" or "-" -> <ul><li>, newlines -> <br>.
    """
    if not text:
        return ""

    html = BOLD.sub(r"<strong>\1</strong>", text)
    html = ITALIC.sub(r"<em>\1</em>", html)
    html = STRIKE.sub(r"<del>\1</del>", html)

    out = []
    in_list = False
    for raw in html.split("\n"):
        line = raw.strip()
        if line.startswith("•") or line.startswith("- "):
            if not in_list:
                out.append("<ul>")
                in_list = True
            out.append(f"<li>{line[1:].strip()}</li>")
            continue
        if in_list:
            out.append("</ul>")
            in_list = False
        out.append(line)
    if in_list:
        out.append("</ul>")

    html = "\n".join(out).replace("\n", "<br>")
    # list tags are block level already
    html = LIST_BREAKS.sub("", html)
    return re.sub(r"(<br>){3,}", "<br><br>", html)
