"""Base component with shared HTML builders and utilities for HTMX components."""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import html
import json


class BaseComponent:
    """Base class for HTMX components with shared HTML builders."""

    @staticmethod
    def escape(text: Any) -> str:
        if text is None:
            return ""
        return html.escape(str(text), quote=True)

    @staticmethod
    def status_badge(status: str, size: str = "ms-2") -> str:
        """Generate a status badge HTML."""
        badge_classes = {
            "pending": "secondary",
            "processing": "primary",
            "stuck": "danger",
            "completed": "success",
            "failed": "warning",
        }
        badge_class = badge_classes.get(status, "secondary")
        return f'<span class="badge bg-{badge_class} {size}">{html.escape(status)}</span>'

    @staticmethod
    def format_date(date: Optional[datetime], format_str: str = "%d.%m.%Y %H:%M") -> str:
        """Format datetime to string or return fallback."""
        if date:
            return date.strftime(format_str)
        return "Never"

    @staticmethod
    def time_ago(date: Optional[datetime], now: Optional[datetime] = None) -> str:
        if not date:
            return "unknown"
        now = now or datetime.now(timezone.utc)
        seconds = max(int((now - date).total_seconds()), 0)
        if seconds < 60:
            return f"{seconds}s ago"
        if seconds < 3600:
            return f"{seconds // 60}m ago"
        if seconds < 86400:
            return f"{seconds // 3600}h ago"
        return f"{seconds // 86400}d ago"

    @staticmethod
    def truncate_text(text: str, max_length: int = 200) -> str:
        """Truncate text with ellipsis."""
        if not text:
            return ""
        return text[:max_length] + "..." if len(text) > max_length else text

    @staticmethod
    def alert_box(message: str, alert_type: str = "info", icon: str = None) -> str:
        """Generate Bootstrap alert box."""
        icon_html = f'<i class="bi bi-{icon}"></i> ' if icon else ""
        return f'<div class="alert alert-{alert_type}">{icon_html}{html.escape(message)}</div>'

    @staticmethod
    def card_container(content: str, title: str = None, classes: str = "card mb-2") -> str:
        """Generate Bootstrap card container."""
        title_html = f'<h6 class="card-title mb-1">{html.escape(title)}</h6>' if title else ''
        return f'''
        <div class="{classes}">
            <div class="card-body">
                {title_html}
                {content}
            </div>
        </div>
        '''

    @staticmethod
    def action_button(endpoint: str, method: str = "post", target: str = "",
                      swap: str = "innerHTML", icon: str = "", text: str = "",
                      classes: str = "btn btn-sm btn-outline-primary",
                      confirm: str = None, vals: Optional[Dict[str, Any]] = None,
                      include: str = None) -> str:
        """Generate HTMX action button."""
        attrs = [f'hx-{method}="{endpoint}"']

        if target:
            attrs.append(f'hx-target="{target}"')
        if swap != "innerHTML":
            attrs.append(f'hx-swap="{swap}"')
        if confirm:
            attrs.append(f'hx-confirm="{html.escape(confirm)}"')
        if vals:
            attrs.append(f'hx-vals="{html.escape(json.dumps(vals))}"')
        if include:
            attrs.append(f'hx-include="{include}"')

        attr_str = ' '.join(attrs)
        icon_html = f'<i class="bi bi-{icon}"></i> ' if icon else ''

        return f'<button class="{classes}" {attr_str}>{icon_html}{html.escape(text)}</button>'

    @staticmethod
    def button_group(buttons: List[str]) -> str:
        return '<div class="btn-group">' + ''.join(buttons) + '</div>'
