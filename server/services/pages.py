"""Minimal HTML error page shared by subscription routes."""

from html import escape
from typing import Optional

_ERROR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Error</title>
</head>
<body>
    <h1>Something went wrong!</h1>
    <p>{message}</p>
    {details}
</body>
</html>
"""


def render_error_page(message: str, error: Optional[BaseException] = None) -> str:
    details = f"<pre>{escape(str(error))}</pre>" if error else ""
    return _ERROR_PAGE.format(message=escape(message), details=details)
