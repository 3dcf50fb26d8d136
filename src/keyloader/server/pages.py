"""HTML rendering for the key entry form and result pages."""

from __future__ import annotations

from html import escape

PAGE_TITLE = "ZFS Remote Key Loader"
KEY_FIELD = "decryption-key"

_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{title}</title>
</head>
<body>
{body}
</body>
</html>
"""

_FORM = """<form method="POST">
<label>Enter decryption key for "{target}":</label><br />
<input type="password" name="{field}" autofocus><br />
<input type="submit">
</form>"""


def render_page(
    target: str,
    message: str = "",
    diagnostic: str = "",
    show_form: bool = True,
) -> str:
    """Render a complete page.

    Every interpolated value is HTML-escaped. The diagnostic block is
    omitted entirely when ``diagnostic`` is empty.
    """
    parts = []
    if message:
        parts.append(f"<h2>{escape(message)}</h2>")
    if diagnostic:
        parts.append(f"<pre>{escape(diagnostic)}</pre>")
    if show_form:
        parts.append(_FORM.format(target=escape(target), field=KEY_FIELD))
    return _PAGE.format(title=PAGE_TITLE, body="\n".join(parts))


def render_form(target: str) -> str:
    return render_page(target)


def render_success(target: str, diagnostic: str) -> str:
    return render_page(target, message="Success!", diagnostic=diagnostic, show_form=False)


def render_failure(target: str, diagnostic: str) -> str:
    return render_page(
        target,
        message=f'Failed to load key for "{target}"',
        diagnostic=diagnostic,
    )


def render_already_unlocked(target: str) -> str:
    return render_page(
        target,
        message="Success!",
        diagnostic=f'The key for "{target}" has already been loaded.',
        show_form=False,
    )
