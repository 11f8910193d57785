from __future__ import annotations

from pathlib import Path
from string import Template
from typing import Any, Dict

from .config import DEFAULT_LAYOUT_NAME


class LayoutRenderError(Exception):
    """Raised when a layout template cannot be resolved or rendered."""


DEFAULT_TEMPLATE = """<!doctype html>
<html>
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>$title</title>
</head>
<body style="margin:0;padding:0;background:#f7f8fb;color:#14161b;">
  <div style="max-width:860px;margin:0 auto;padding:22px 14px 40px;">
    <div style="background:#ffffff;border:1px solid #e6e8f0;border-radius:14px;overflow:hidden;">
      <div style="padding:16px 18px;border-bottom:1px solid #eef0f6;font-weight:700;">$title</div>
      <div style="padding:18px 18px 20px;font-family:monospace;font-size:13px;line-height:1.5;">
        $events
      </div>
    </div>
    <div style="margin-top:14px;color:#6b7280;font-size:12px;line-height:1.5;">This message was sent automatically.</div>
  </div>
</body>
</html>"""


class Layout:
    """HTML layout rendered with ``string.Template`` placeholders.

    The template is read from ``<layout_path>/<layout>.html``; without a
    ``layout_path`` a built-in document shell is used. Variables are assigned
    as attributes (``layout.events = "..."``) or through :meth:`assign`.
    """

    def __init__(
        self,
        layout_path: str | Path | None = None,
        layout: str = DEFAULT_LAYOUT_NAME,
        title: str = "Log report",
    ) -> None:
        self.layout_path = Path(layout_path) if layout_path is not None else None
        self.layout = layout
        self._variables: Dict[str, Any] = {"title": escape_html(title), "events": ""}

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or name in {"layout_path", "layout"}:
            super().__setattr__(name, value)
        else:
            self._variables[name] = value

    def __getattr__(self, name: str) -> Any:
        variables = self.__dict__.get("_variables", {})
        if name in variables:
            return variables[name]
        raise AttributeError(name)

    def assign(self, name: str, value: Any) -> "Layout":
        self._variables[name] = value
        return self

    def template_file(self) -> Path | None:
        if self.layout_path is None:
            return None
        return self.layout_path / f"{self.layout}.html"

    def render(self) -> str:
        path = self.template_file()
        if path is None:
            source = DEFAULT_TEMPLATE
        else:
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise LayoutRenderError(f"layout script '{path}' could not be read: {exc}") from exc
        try:
            return Template(source).substitute(self._variables)
        except (KeyError, ValueError) as exc:
            raise LayoutRenderError(f"layout '{self.layout}' references an unknown or invalid placeholder: {exc}") from exc


def escape_html(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
