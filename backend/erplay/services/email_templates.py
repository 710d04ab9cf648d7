"""
Shared HTML building blocks for ERPlay notification emails.
"""

from datetime import datetime
from typing import Optional
import html


def escape_html(raw: Optional[str]) -> str:
    """Escape a value for interpolation into HTML"""
    return html.escape(raw or "", quote=True)


def letter_from_index(index) -> str:
    """0 -> 'A', 1 -> 'B', ... (negative or invalid indexes map to 'A')"""
    try:
        value = int(index)
    except (TypeError, ValueError):
        value = 0
    return chr(65 + max(0, value))


def render_card_email(
    title: str,
    body_html: str,
    accent: str = "#F3F4F6",
    footer_html: Optional[str] = None,
) -> str:
    """Wrap body_html in the white card layout with a coloured header"""
    footer = footer_html or f"&copy; {datetime.utcnow().year} ERPlay"
    return f"""
    <div style="background:#f5f7fb;padding:24px 16px;">
      <div style="max-width:680px;margin:0 auto;background:#ffffff;
                  border:1px solid #e5e7eb;border-radius:12px;
                  box-shadow:0 2px 10px rgba(17,24,39,0.06);overflow:hidden;
                  font-family:Inter,system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial,sans-serif;
                  color:#111827;">
        <div style="padding:14px 20px;background:{accent};border-bottom:1px solid #e5e7eb;">
          <h2 style="margin:0;font-size:18px;line-height:1.3;color:#111827">{title}</h2>
        </div>
        <div style="padding:20px">
          {body_html}
        </div>
        <div style="padding:12px 20px;border-top:1px solid #e5e7eb;text-align:center;color:#6b7280;font-size:12px;">
          {footer}
        </div>
      </div>
    </div>
    """


def badge(label: str, background: str, color: str, border: str) -> str:
    return (
        f'<span style="display:inline-block;padding:2px 10px;border-radius:999px;'
        f'background:{background};color:{color};border:1px solid {border};'
        f'font-size:12px;font-weight:600;">{escape_html(label)}</span>'
    )


def button(href: str, label: str) -> str:
    return (
        f'<a href="{escape_html(href)}" style="display:inline-block;padding:12px 18px;'
        f'border-radius:10px;background:#4f46e5;color:#fff;text-decoration:none;'
        f'font-weight:600">{escape_html(label)}</a>'
    )


def answer_chip(label: str, index: int, text: str) -> str:
    suffix = f" · {escape_html(text)}" if text else ""
    return (
        '<span style="display:inline-block;border:1px solid #D1D5DB;border-radius:10px;'
        'padding:6px 10px;background:#ffffff;margin:0 8px 8px 0;">'
        f"<strong>{escape_html(label)}</strong>: {letter_from_index(index)}{suffix}</span>"
    )


def boxed(label: str, content: str, border: str = "#e5e7eb", background: str = "#F9FAFB") -> str:
    return (
        f'<div style="margin:16px 0;"><div style="color:#6b7280;font-size:12px;margin-bottom:6px">'
        f'{escape_html(label)}</div><div style="padding:12px;border:1px solid {border};'
        f'background:{background};border-radius:10px;">{escape_html(content)}</div></div>'
    )
