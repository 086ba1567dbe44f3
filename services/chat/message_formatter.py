"""Render assistant text as chat HTML, inlining image references.

Image references come in two shapes: `Generated image: <url>` and markdown
links `[alt](<url>)`. Data URLs become `<img>` tags right away. Remote and
`/uploads/` URLs become a deferred-load container: the page swaps the
"Loading image..." text for the image once it loads, or for the embedded
fallback block when it does not.
"""

import html
import re
import uuid

IMG_STYLE = "max-width: 100%; border-radius: 8px; margin: 8px 0; display: block;"

_GENERATED_DATA_URL = re.compile(
    r"Generated image:\s*(data:image/[^;\s]+;base64,[A-Za-z0-9+/=]+)", re.IGNORECASE
)
_GENERATED_REMOTE_URL = re.compile(r"Generated image:\s*((?:https?://|/uploads/)[^\s]+)", re.IGNORECASE)
_MARKDOWN_IMAGE_LINK = re.compile(
    r"\[([^\]]*)\]\(((?:data:image/[^)]+|https?://[^)]+|/uploads/[^)]+))\)", re.IGNORECASE
)
# Not preceded by a quote, so URLs already moved into data-src attributes survive.
_DALLE_BLOB_URL = re.compile(r'(?<!")(https://oaidalleapiprodscus\.blob\.core\.windows\.net/[^\s"<]+)', re.IGNORECASE)
_CODE_BLOCK = re.compile(r"```([\s\S]*?)```")
_INLINE_CODE = re.compile(r"`([^`]+)`")


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def inline_image(url: str, alt: str) -> str:
    """Return an `<img>` tag for an image that can be shown immediately."""
    return f'<img src="{_attr(url)}" alt="{_attr(alt)}" style="{IMG_STYLE}">'


def image_fallback(alt: str) -> str:
    """Return the placeholder block shown when a remote image fails to load."""
    return (
        '<div class="image-fallback" style="background: #f1f5f9; border: 2px dashed #94a3b8; '
        'border-radius: 8px; padding: 20px; text-align: center; margin: 8px 0;">'
        f'<p style="color: #64748b; margin: 0; font-size: 1.1em;">🎨 {html.escape(alt)}</p>'
        '<p style="color: #94a3b8; font-size: 0.9em; margin: 4px 0 0 0;">Image temporarily unavailable</p>'
        "</div>"
    )


def deferred_image(url: str, alt: str) -> str:
    """Return a container that the page fills once the remote image loads."""
    container_id = f"img_container_{uuid.uuid4().hex[:9]}"
    return (
        f'<div id="{container_id}" class="image-container" data-src="{_attr(url)}" data-alt="{_attr(alt)}">'
        "Loading image..."
        f'<template class="image-fallback-template">{image_fallback(alt)}</template>'
        "</div>"
    )


def _markdown_image(match: "re.Match[str]") -> str:
    alt, url = match.group(1), match.group(2)
    if url.lower().startswith("data:"):
        return inline_image(url, alt)
    return deferred_image(url, alt)


def format_message(text: str) -> str:
    """Convert assistant text into chat HTML."""
    processed = _GENERATED_DATA_URL.sub(lambda m: inline_image(m.group(1), "Generated image"), text)
    processed = _GENERATED_REMOTE_URL.sub(lambda m: deferred_image(m.group(1), "Generated image"), processed)
    processed = _MARKDOWN_IMAGE_LINK.sub(_markdown_image, processed)

    # Expiring DALL-E blob links left in the text are dead weight
    processed = _DALLE_BLOB_URL.sub("", processed)

    processed = _CODE_BLOCK.sub(
        r'<pre style="background: #f1f5f9; padding: 12px; border-radius: 6px; margin: 8px 0;"><code>\1</code></pre>',
        processed,
    )
    processed = _INLINE_CODE.sub(
        r'<code style="background: #f1f5f9; padding: 2px 4px; border-radius: 3px;">\1</code>', processed
    )
    return processed.replace("\n", "<br>")
