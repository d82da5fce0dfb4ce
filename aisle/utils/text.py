"""
Text Processing Utilities

Rendering helpers for imported posts shown on the dashboard:
1. linkify_content: escape the text, then turn URLs and hashtags into links
2. truncate_preview: shorten long posts on a word boundary
"""

import re

from markupsafe import Markup, escape


HASHTAG_URL = "https://bsky.app/hashtag/{tag}"

MAX_PREVIEW_LENGTH = 280


def linkify_content(text: str) -> Markup:
    """
    Convert URLs and hashtags in ``text`` to HTML links.

    The text is HTML-escaped first, so the result can be rendered without
    further escaping.

    Example:
        >>> linkify_content("Read https://npr.org #vote")
        Markup('Read <a href="https://npr.org" ...>npr.org</a> <a href="https://bsky.app/hashtag/vote" ...>#vote</a>')
    """
    def replace(match):
        url = match.group(1)
        hashtag = match.group(2)

        if url:
            display_url = re.sub(r'^https?://', '', url)
            if len(display_url) > 30:
                display_url = display_url[:27] + "..."
            return f'<a href="{url}" target="_blank" rel="noopener noreferrer" class="external-link">{display_url}</a>'

        tag = hashtag[1:]
        return f'<a href="{HASHTAG_URL.format(tag=tag)}" target="_blank" rel="noopener noreferrer" class="hashtag">{hashtag}</a>'

    # URLs are group 1, hashtags group 2; "&#39;" style entities are not hashtags
    pattern = r'(https?://[^\s<]+)|(?<!&)(#\w+)'
    return Markup(re.sub(pattern, replace, str(escape(text))))


def truncate_preview(text: str, max_length: int = MAX_PREVIEW_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    preview = text[:max_length]
    last_space = preview.rfind(" ")
    if last_space > 0:
        preview = preview[:last_space]
    return preview + "..."
