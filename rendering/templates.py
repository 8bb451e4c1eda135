# rendering/templates.py
import html

CSS = """
body{font-family:system-ui,sans-serif;margin:0;padding:1rem 1.5rem;background:#fafafa;color:#222}
h1{font-size:1.2rem;word-break:break-all}
a{color:#0645ad;text-decoration:none}a:hover{text-decoration:underline}
.toolbar{display:flex;gap:.75rem;align-items:center;margin-bottom:1rem}
.toolbar .active{font-weight:bold;color:#222}
.empty{color:#777;font-style:italic}
ul.list{list-style:none;padding:0}ul.list li{padding:.2rem 0}
table{border-collapse:collapse;width:100%}
th,td{text-align:left;padding:.3rem .6rem;border-bottom:1px solid #ddd}
td.size,th.size{text-align:right}
.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(170px,1fr));gap:.8rem}
.card{background:#fff;border:1px solid #ddd;border-radius:6px;padding:.5rem;text-align:center;word-break:break-all}
.thumb{height:120px;display:flex;align-items:center;justify-content:center;font-size:3rem;overflow:hidden}
.thumb img{max-width:100%;max-height:120px;object-fit:cover}
a.play{font-size:.8rem;color:#777;margin-left:.4rem}
video,audio{max-width:100%}
pre{background:#fff;border:1px solid #ddd;padding:.8rem;overflow:auto;white-space:pre-wrap}
"""

ICON_FOLDER = "&#128193;"
ICON_FILE = "&#128196;"
ICON_VIDEO = "&#127916;"
ICON_IMAGE = "&#128444;"
ICON_AUDIO = "&#127925;"
ICON_TEXT = "&#128221;"
ICON_PARENT = "&#11014;"


def wrap_html(title: str, body: str) -> str:
    """Return a complete HTML document; title must be unescaped text."""
    return (
        "<!DOCTYPE html>\n"
        "<html lang='en'><head><meta charset='utf-8'>"
        "<meta name='viewport' content='width=device-width, initial-scale=1'>"
        f"<title>{html.escape(title)}</title><style>{CSS}</style></head>\n"
        f"<body>\n{body}\n</body></html>\n"
    )
