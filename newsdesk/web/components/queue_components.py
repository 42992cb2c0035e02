"""Queue console HTMX components."""

from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse
from typing import List, Optional

from newsdesk.core.exceptions import ValidationException
from newsdesk.core.logging_config import get_logger
from newsdesk.dependencies import get_queue_panel
from newsdesk.models import (
    ActionResult, ActivityEntry, DispatchAction, ParentArticle, QueuedArticleView, QueueStats, SlideType, StuckJob
)
from newsdesk.services.action_dispatcher import SLIDE_TYPE_LABELS
from newsdesk.services.queue_panel import QueuePanel
from newsdesk.services.selection import SelectionController
from .base_component import BaseComponent

router = APIRouter(prefix="/queue", tags=["htmx-queue"])
logger = get_logger(__name__)

QUEUE_TARGET = "#queue-panel"
PENDING_TARGET = "#pending-articles-panel"
STUCK_TARGET = "#stuck-jobs-panel"

STUCK_REASON_TEXT = {
    "attempts_exhausted": "Max attempts reached",
    "processing_timeout": "Processing for over 10 minutes",
}


class QueueComponent(BaseComponent):
    """HTML builders for the queue, pending-articles and stuck-job panels."""

    @staticmethod
    def checkbox(item_id: str, checked: bool, target: str) -> str:
        checked_attr = " checked" if checked else ""
        return (
            f'<input type="checkbox" class="form-check-input" name="targets" '
            f'value="{QueueComponent.escape(item_id)}"{checked_attr} '
            f'hx-post="/htmx/queue/selection/toggle/{QueueComponent.escape(item_id)}" '
            f'hx-target="{target}">'
        )

    @staticmethod
    def build_queue_row(row: QueuedArticleView, selection: SelectionController) -> str:
        stuck_html = ""
        if row.is_stuck and row.stuck_reason:
            reason = STUCK_REASON_TEXT.get(row.stuck_reason.value, row.stuck_reason.value)
            stuck_html = f'<small class="text-danger d-block">{QueueComponent.escape(reason)}</small>'

        error_html = ""
        if row.error_message:
            error_html = (
                f'<small class="text-muted d-block">'
                f'{QueueComponent.escape(QueueComponent.truncate_text(row.error_message, 120))}</small>'
            )

        buttons = [
            QueueComponent.action_button(
                "/htmx/queue/actions/cancel", target=QUEUE_TARGET, icon="x-circle",
                text="Cancel", classes="btn btn-sm btn-outline-danger",
                vals={"targets": row.queue_id}
            ),
            QueueComponent.action_button(
                "/htmx/queue/actions/return_to_pipeline", target=QUEUE_TARGET, icon="arrow-counterclockwise",
                text="Return", classes="btn btn-sm btn-outline-secondary",
                vals={"targets": row.queue_id}
            ),
        ]

        return f'''
        <tr id="queue-row-{QueueComponent.escape(row.queue_id)}">
            <td>{QueueComponent.checkbox(row.queue_id, selection.is_selected(row.queue_id), QUEUE_TARGET)}</td>
            <td>
                <strong>{QueueComponent.escape(row.title)}</strong>
                {stuck_html}{error_html}
            </td>
            <td>{QueueComponent.status_badge(row.queue_status.value, size="")}</td>
            <td>{row.attempts}/{row.max_attempts}</td>
            <td><small>{QueueComponent.time_ago(row.created_at)}</small></td>
            <td>{QueueComponent.button_group(buttons)}</td>
        </tr>'''

    @staticmethod
    def build_queue_table(rows: List[QueuedArticleView], selection: SelectionController) -> str:
        if not rows:
            return QueueComponent.alert_box("No articles in the generation queue", "info", "inbox")

        all_selected = bool(rows) and all(selection.is_selected(row.queue_id) for row in rows)
        bulk_bar = ""
        if selection.count:
            cancel_button = QueueComponent.action_button(
                "/htmx/queue/actions/bulk_cancel", target=QUEUE_TARGET, icon="trash",
                text="Cancel selected", classes="btn btn-sm btn-danger",
                confirm=f"Cancel {selection.count} queued items?"
            )
            bulk_bar = f'''
            <div class="d-flex align-items-center gap-2 mb-2">
                <span>{selection.count} selected</span>
                {cancel_button}
            </div>'''

        body = "".join(QueueComponent.build_queue_row(row, selection) for row in rows)
        checked_attr = " checked" if all_selected else ""
        return f'''
        {bulk_bar}
        <table class="table table-sm align-middle">
            <thead>
                <tr>
                    <th><input type="checkbox" class="form-check-input"{checked_attr}
                               hx-post="/htmx/queue/selection/toggle-all" hx-target="{QUEUE_TARGET}"></th>
                    <th>Article</th><th>Status</th><th>Attempts</th><th>Queued</th><th></th>
                </tr>
            </thead>
            <tbody>{body}</tbody>
        </table>'''

    @staticmethod
    def build_article_actions(article: ParentArticle) -> str:
        """Slide type picker plus approve / extract / reject for one pending article."""
        select_id = f"slidetype-{QueueComponent.escape(article.id)}"
        options = "".join(
            f'<option value="{slidetype.value}"{" selected" if slidetype == SlideType.TABLOID else ""}>'
            f'{QueueComponent.escape(label)}</option>'
            for slidetype, label in SLIDE_TYPE_LABELS.items()
        )

        buttons = [
            QueueComponent.action_button(
                "/htmx/queue/actions/approve", target=PENDING_TARGET, icon="check-lg",
                text="Approve", classes="btn btn-sm btn-success",
                vals={"targets": article.id}, include=f"#{select_id}"
            ),
            QueueComponent.action_button(
                "/htmx/queue/actions/reject", target=PENDING_TARGET, icon="x-lg",
                text="Reject", classes="btn btn-sm btn-outline-danger",
                vals={"targets": article.id}
            ),
        ]
        if article.source_url:
            buttons.insert(1, QueueComponent.action_button(
                "/htmx/queue/actions/extract_content", target=PENDING_TARGET, icon="file-earmark-text",
                text="Extract", classes="btn btn-sm btn-outline-secondary",
                vals={"targets": article.id}
            ))

        return f'''
                <div class="d-flex gap-1">
                    <select id="{select_id}" name="slidetype" class="form-select form-select-sm">{options}</select>
                    {QueueComponent.button_group(buttons)}
                </div>'''

    @staticmethod
    def build_pending_list(articles: List[ParentArticle], selection: SelectionController) -> str:
        if not articles:
            return QueueComponent.alert_box("No articles awaiting approval", "info", "check2-all")

        items = ""
        for article in articles:
            score = article.relevance_score
            items += f'''
            <li class="list-group-item d-flex align-items-start gap-2">
                {QueueComponent.checkbox(article.id, selection.is_selected(article.id), PENDING_TARGET)}
                <div class="flex-grow-1">
                    <strong>{QueueComponent.escape(article.title)}</strong>
                    <small class="text-muted d-block">
                        {QueueComponent.escape(article.author or "")} {QueueComponent.format_date(article.published_at)}
                        - relevance {score:g}
                    </small>
                </div>
                {QueueComponent.build_article_actions(article)}
            </li>'''

        delete_button = ""
        selected_here = [a.id for a in articles if selection.is_selected(a.id)]
        if selected_here:
            delete_button = QueueComponent.action_button(
                "/htmx/queue/actions/delete", target=PENDING_TARGET, icon="trash",
                text=f"Delete {len(selected_here)}", classes="btn btn-sm btn-danger mb-2",
                confirm=f"Discard {len(selected_here)} articles?"
            )

        return f'{delete_button}<ul class="list-group">{items}</ul>'

    @staticmethod
    def build_stuck_jobs(jobs: List[StuckJob]) -> str:
        header = QueueComponent.button_group([
            QueueComponent.action_button(
                "/htmx/queue/actions/reset_processing", target=STUCK_TARGET,
                icon="arrow-repeat", text="Reset processing", classes="btn btn-sm btn-outline-warning"
            ),
            QueueComponent.action_button(
                "/htmx/queue/actions/clear_all_stuck", target=STUCK_TARGET,
                icon="trash", text="Clear all", classes="btn btn-sm btn-outline-danger",
                confirm="Clear every stuck job?"
            ),
        ])

        if not jobs:
            return header + QueueComponent.alert_box("No stuck jobs", "success", "check-circle")

        rows = ""
        for job in jobs:
            clear_button = QueueComponent.action_button(
                "/htmx/queue/actions/clear", target=STUCK_TARGET, icon="x",
                text="Clear", classes="btn btn-sm btn-outline-danger",
                vals={"targets": job.id}
            )
            rows += f'''
            <li class="list-group-item d-flex justify-content-between align-items-center">
                <div>
                    <strong>{QueueComponent.escape(job.title)}</strong>
                    {QueueComponent.status_badge(job.status.value)}
                    <small class="text-muted d-block">
                        Attempts {job.attempts}/{job.max_attempts} - {QueueComponent.time_ago(job.created_at)}
                    </small>
                </div>
                {clear_button}
            </li>'''
        return f'{header}<ul class="list-group mt-2">{rows}</ul>'

    @staticmethod
    def build_status_card(title: str, value: int, color: str = "primary") -> str:
        """Build HTML for a status card."""
        return f'''
        <div class="col-md-3">
            <div class="card text-center">
                <div class="card-body">
                    <h2 class="text-{color}">{value}</h2>
                    <p class="card-text">{title}</p>
                </div>
            </div>
        </div>
        '''

    @staticmethod
    def build_stats(stats: QueueStats) -> str:
        html = '<div class="row">'
        html += QueueComponent.build_status_card("Pending", stats.pending, "secondary")
        html += QueueComponent.build_status_card("Processing", stats.processing, "primary")
        html += QueueComponent.build_status_card("Completed", stats.completed, "success")
        html += QueueComponent.build_status_card("Failed", stats.failed, "danger")
        html += '</div>'
        html += QueueComponent.button_group([
            QueueComponent.action_button(
                "/htmx/queue/actions/process_queue", target="#queue-stats-panel",
                icon="play", text="Process queue", classes="btn btn-sm btn-primary mt-2"
            ),
            QueueComponent.action_button(
                "/htmx/queue/actions/reset_failed", target="#queue-stats-panel",
                icon="arrow-counterclockwise", text="Reset failed", classes="btn btn-sm btn-outline-secondary mt-2"
            ),
        ])
        return html

    @staticmethod
    def build_activity(entries: List[ActivityEntry]) -> str:
        if not entries:
            return '<p class="text-muted">No recent activity</p>'

        level_colors = {"error": "danger", "warning": "warning", "info": "info"}
        items = ""
        for entry in entries:
            color = level_colors.get(entry.level.lower(), "secondary")
            items += f'''
            <li class="list-group-item">
                <span class="badge bg-{color}">{QueueComponent.escape(entry.level)}</span>
                {QueueComponent.escape(QueueComponent.truncate_text(entry.message, 160))}
                <small class="text-muted float-end">{QueueComponent.time_ago(entry.created_at)}</small>
            </li>'''
        return f'<ul class="list-group list-group-flush">{items}</ul>'

    @staticmethod
    def build_action_feedback(result: ActionResult) -> str:
        if result.skipped:
            return QueueComponent.alert_box("Already in progress", "secondary", "hourglass-split")
        if result.success:
            return QueueComponent.alert_box(result.message or "Done", "success", "check-circle")
        return QueueComponent.alert_box(result.message or "Action failed", "danger", "exclamation-triangle")


def _render_for(action: DispatchAction, panel: QueuePanel) -> str:
    if action in (DispatchAction.DELETE, DispatchAction.APPROVE, DispatchAction.REJECT,
                  DispatchAction.EXTRACT_CONTENT):
        return QueueComponent.build_pending_list(panel.pending_articles, panel.selection)
    if action in (DispatchAction.CLEAR, DispatchAction.CLEAR_ALL_STUCK, DispatchAction.RESET_PROCESSING):
        return QueueComponent.build_stuck_jobs(panel.stuck_jobs)
    if action in (DispatchAction.PROCESS_QUEUE, DispatchAction.RESET_FAILED):
        return QueueComponent.build_stats(panel.stats)
    return QueueComponent.build_queue_table(panel.queued, panel.selection)


@router.get("/items", response_class=HTMLResponse)
async def queue_items(panel: QueuePanel = Depends(get_queue_panel)):
    """Reconciled queue table with selection checkboxes."""
    return QueueComponent.build_queue_table(panel.queued, panel.selection)


@router.get("/pending-articles", response_class=HTMLResponse)
async def pending_articles(panel: QueuePanel = Depends(get_queue_panel)):
    return QueueComponent.build_pending_list(panel.pending_articles, panel.selection)


@router.get("/stuck", response_class=HTMLResponse)
async def stuck_jobs(panel: QueuePanel = Depends(get_queue_panel)):
    return QueueComponent.build_stuck_jobs(panel.stuck_jobs)


@router.get("/stats", response_class=HTMLResponse)
async def queue_stats(panel: QueuePanel = Depends(get_queue_panel)):
    return QueueComponent.build_stats(panel.stats)


@router.get("/activity", response_class=HTMLResponse)
async def recent_activity(panel: QueuePanel = Depends(get_queue_panel)):
    return QueueComponent.build_activity(panel.activity)


@router.post("/selection/toggle/{item_id}", response_class=HTMLResponse)
async def toggle_selection(item_id: str, panel: QueuePanel = Depends(get_queue_panel)):
    panel.selection.toggle(item_id)
    if any(article.id == item_id for article in panel.pending_articles):
        return QueueComponent.build_pending_list(panel.pending_articles, panel.selection)
    return QueueComponent.build_queue_table(panel.queued, panel.selection)


@router.post("/selection/toggle-all", response_class=HTMLResponse)
async def toggle_all_selection(panel: QueuePanel = Depends(get_queue_panel)):
    panel.selection.toggle_all(row.queue_id for row in panel.queued)
    return QueueComponent.build_queue_table(panel.queued, panel.selection)


@router.post("/actions/{action}", response_class=HTMLResponse)
async def run_action(
    action: DispatchAction,
    targets: Optional[List[str]] = Form(default=None),
    slidetype: Optional[SlideType] = Form(default=None),
    panel: QueuePanel = Depends(get_queue_panel)
):
    """Run an action and re-render the panel it belongs to, with feedback on top."""
    if not targets:
        targets = panel.selected_targets(action)

    try:
        result = await panel.dispatcher.dispatch(action, targets, slidetype=slidetype)
    except ValidationException as e:
        return QueueComponent.alert_box(e.user_message, "warning", "exclamation-circle") + _render_for(action, panel)

    return QueueComponent.build_action_feedback(result) + _render_for(action, panel)
