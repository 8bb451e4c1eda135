# rendering/views.py
import html
import os
from datetime import timezone
from typing import Callable, Dict, List, Optional
from urllib.parse import quote, urlencode

from core.config import AUDIO_EXT, IMAGE_EXT, VIDEO_EXT
from schemas.listing import DirEntry, Listing, SortDirection, SortKey, ViewKind
from rendering.templates import (
    ICON_AUDIO,
    ICON_FILE,
    ICON_FOLDER,
    ICON_IMAGE,
    ICON_PARENT,
    ICON_TEXT,
    ICON_VIDEO,
    wrap_html,
)

TEXT_EXT = {".txt", ".md", ".log", ".csv", ".json", ".xml", ".yaml", ".yml", ".ini", ".py", ".rs", ".sh"}

TABLE_COLUMNS = [
    (SortKey.NAME, "Name"),
    (SortKey.SIZE, "Size"),
    (SortKey.MODIFIED, "Modified"),
    (SortKey.TYPE, "Type"),
]


def display_name(name: str) -> str:
    """HTML-safe text for a filesystem name (undecodable bytes become U+FFFD)."""
    return html.escape(os.fsencode(name).decode("utf-8", errors="replace"))


def attr(value: str) -> str:
    return html.escape(value, quote=True)


def link_name(name: str) -> str:
    """Percent-encode the raw filesystem bytes of name for use in an href."""
    return quote(os.fsencode(name), safe="")


def listing_query(view: ViewKind, sort_key: SortKey, direction: SortDirection) -> str:
    return "?" + urlencode({"view": view.value, "sort": sort_key.value, "order": direction.value})


def entry_href(entry: DirEntry, query: str) -> str:
    if entry.is_dir:
        return f"{link_name(entry.name)}/{query}"
    return link_name(entry.name)


def format_size(entry: DirEntry) -> str:
    if entry.size is None:
        return "-"
    if entry.is_dir:
        return f"{entry.size} item" + ("" if entry.size == 1 else "s")
    size = float(entry.size)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024 or unit == "TB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{entry.size} B"


def format_modified(entry: DirEntry) -> str:
    return entry.modified_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def kind_icon(entry: DirEntry) -> str:
    if entry.is_dir:
        return ICON_FOLDER
    ext = os.path.splitext(entry.name)[1].lower()
    if ext in VIDEO_EXT:
        return ICON_VIDEO
    if ext in IMAGE_EXT:
        return ICON_IMAGE
    if ext in AUDIO_EXT:
        return ICON_AUDIO
    if ext in TEXT_EXT:
        return ICON_TEXT
    return ICON_FILE


def _header(listing: Listing, view: ViewKind, current_path: str, is_root: bool) -> str:
    parts: List[str] = [f"<h1>Index of {display_name(current_path)}</h1>", "<div class='toolbar'>"]
    if not is_root:
        query = listing_query(view, listing.sort_key, listing.direction)
        parts.append(f"<a class='parent' href='../{attr(query)}'>{ICON_PARENT} Parent folder</a>")
    for kind in ViewKind:
        label = kind.value.capitalize()
        if kind is view:
            parts.append(f"<span class='active'>{label}</span>")
        else:
            query = listing_query(kind, listing.sort_key, listing.direction)
            parts.append(f"<a class='view' href='{attr(query)}'>{label}</a>")
    parts.append("</div>")
    return "\n".join(parts)


def viewer_link(entry: DirEntry) -> str:
    """Secondary link to the in-browser viewer, for files that have one."""
    if entry.is_dir or not player_kind(entry.name):
        return ""
    return f" <a class='play' href='{attr(link_name(entry.name))}?view=player'>view</a>"


def render_list(listing: Listing, query: str) -> str:
    rows = [
        f"<li>{kind_icon(e)} <a href='{attr(entry_href(e, query))}'>"
        f"{display_name(e.name)}{'/' if e.is_dir else ''}</a>{viewer_link(e)}</li>"
        for e in listing.entries
    ]
    return "<ul class='list'>\n" + "\n".join(rows) + "\n</ul>"


def column_link(listing: Listing, key: SortKey, label: str) -> str:
    """Header link that re-sorts by key; clicking the active column flips the order."""
    if listing.sort_key is key:
        direction = listing.direction.toggled()
        marker = " &#9650;" if listing.direction is SortDirection.ASC else " &#9660;"
    else:
        direction = SortDirection.ASC
        marker = ""
    href = listing_query(ViewKind.TABLE, key, direction)
    return f"<a class='sort' href='{attr(href)}'>{label}</a>{marker}"


def render_table(listing: Listing, query: str) -> str:
    head = "".join(
        f"<th class='{key.value}'>{column_link(listing, key, label)}</th>"
        for key, label in TABLE_COLUMNS
    )
    rows = []
    for e in listing.entries:
        rows.append(
            "<tr>"
            f"<td class='name'>{kind_icon(e)} <a href='{attr(entry_href(e, query))}'>"
            f"{display_name(e.name)}{'/' if e.is_dir else ''}</a>{viewer_link(e)}</td>"
            f"<td class='size'>{format_size(e)}</td>"
            f"<td class='modified'>{format_modified(e)}</td>"
            f"<td class='type'>{html.escape(e.type_label)}</td>"
            "</tr>"
        )
    return (
        f"<table>\n<thead><tr>{head}</tr></thead>\n<tbody>\n"
        + "\n".join(rows)
        + "\n</tbody>\n</table>"
    )


def grid_thumb(entry: DirEntry) -> str:
    """
    Lazy <img> pointing at the file's ?thumbnail=1 endpoint, so the page itself
    never waits on the transcoder. A failed fetch falls back to the kind icon.
    """
    ext = os.path.splitext(entry.name)[1].lower()
    if entry.is_dir or ext not in VIDEO_EXT | IMAGE_EXT:
        return kind_icon(entry)
    src = attr(f"{link_name(entry.name)}?thumbnail=1")
    fallback = attr(f"this.outerHTML='{kind_icon(entry)}'")
    return f"<img loading='lazy' src='{src}' alt='' onerror=\"{fallback}\">"


def render_grid(listing: Listing, query: str) -> str:
    cards = []
    for e in listing.entries:
        href = entry_href(e, query)
        cards.append(
            "<div class='card'>"
            f"<a href='{attr(href)}'><div class='thumb'>{grid_thumb(e)}</div>"
            f"{display_name(e.name)}{'/' if e.is_dir else ''}</a>{viewer_link(e)}"
            "</div>"
        )
    return "<div class='grid'>\n" + "\n".join(cards) + "\n</div>"


RENDERERS: Dict[ViewKind, Callable[[Listing, str], str]] = {
    ViewKind.LIST: render_list,
    ViewKind.TABLE: render_table,
    ViewKind.GRID: render_grid,
}


def render_listing(
    listing: Listing,
    view: ViewKind,
    current_path: str,
    is_root: bool = False,
) -> bytes:
    """Render listing as an HTML page in the requested layout."""
    query = listing_query(view, listing.sort_key, listing.direction)
    if listing.entries:
        content = RENDERERS[view](listing, query)
    else:
        content = "<p class='empty'>This folder is empty.</p>"
    body = _header(listing, view, current_path, is_root) + "\n" + content
    title = os.fsencode(current_path).decode("utf-8", errors="replace")
    return wrap_html(f"Index of {title}", body).encode("utf-8")


def player_kind(name: str) -> Optional[str]:
    ext = os.path.splitext(name)[1].lower()
    if ext in VIDEO_EXT:
        return "video"
    if ext in AUDIO_EXT:
        return "audio"
    if ext in TEXT_EXT:
        return "text"
    return None


def render_player(name: str, text_preview: Optional[str] = None, truncated: bool = False) -> bytes:
    """In-browser viewer page for a media or text file living next to the page URL."""
    kind = player_kind(name)
    src = link_name(name)
    if kind in ("video", "audio"):
        parts = [
            f"<{kind} controls preload='metadata' src='{src}'>",
            f"<a href='{src}'>Download {display_name(name)}</a>",
            f"</{kind}>",
        ]
    else:
        parts = [f"<pre>{html.escape(text_preview or '')}</pre>"]
        if truncated:
            parts.append("<p class='empty'>Preview truncated.</p>")
    header = (
        f"<h1>{display_name(name)}</h1>"
        f"<div class='toolbar'><a class='parent' href='./'>{ICON_PARENT} Back to folder</a>"
        f"<a href='{src}'>Raw file</a></div>"
    )
    title = os.fsencode(name).decode("utf-8", errors="replace")
    return wrap_html(title, header + "\n" + "\n".join(parts)).encode("utf-8")
