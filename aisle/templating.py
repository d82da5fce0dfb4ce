"""
Jinja2 Template Configuration

Shared template loader for the server-rendered pages.
"""

import os

from fastapi.templating import Jinja2Templates

from aisle.utils.text import linkify_content, truncate_preview


TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

templates = Jinja2Templates(directory=TEMPLATE_DIR)
templates.env.filters["linkify"] = linkify_content
templates.env.filters["preview"] = truncate_preview
