"""
Notification email templates

One typed payload per event kind. render_template() is pure: the same
event always renders the same subject/html/text and nothing is sent.
Optional fields fall back to literal text, never to blanks.
"""

import html
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

APP_NAME = "Build Plan Quantify"


class EventKind(str, Enum):
    BID_RECEIVED = "bid_received"
    TASK_ASSIGNED = "task_assigned"
    TASK_REASSIGNED = "task_reassigned"
    PROJECT_MEMBER_ADDED = "project_member_added"


class EmailContent(BaseModel):
    subject: str
    html: str
    text: str


# ═══════════════════════════════════════════════════════════════
# EVENT PAYLOADS
# ═══════════════════════════════════════════════════════════════


class EventPayload(BaseModel):
    # Webhook/frontend payloads use camelCase keys
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class BidReceivedData(EventPayload):
    bid_request_title: str = ""
    vendor_name: str = "Unknown Vendor"
    price: Optional[float] = None
    delivery_time_days: Optional[int] = None
    notes: Optional[str] = None
    project_url: str = ""


class TaskAssignedData(EventPayload):
    task_title: str = ""
    project_name: str = "Unknown Project"
    task_description: Optional[str] = None
    priority: str = "medium"
    due_date: Optional[Union[datetime, date, str]] = None
    assigned_by_name: str = "Project Owner"
    project_url: str = ""


class TaskReassignedData(EventPayload):
    task_title: str = ""
    project_name: str = "Unknown Project"
    task_description: Optional[str] = None
    priority: str = "medium"
    due_date: Optional[Union[datetime, date, str]] = None
    project_url: str = ""


class ProjectMemberAddedData(EventPayload):
    project_name: str = "Unknown Project"
    project_type: str = "Unknown"
    project_status: str = "Unknown"
    owner_name: str = "Project Owner"
    member_role: str = "member"
    project_url: str = ""


PAYLOAD_MODELS = {
    EventKind.BID_RECEIVED: BidReceivedData,
    EventKind.TASK_ASSIGNED: TaskAssignedData,
    EventKind.TASK_REASSIGNED: TaskReassignedData,
    EventKind.PROJECT_MEMBER_ADDED: ProjectMemberAddedData,
}


# ═══════════════════════════════════════════════════════════════
# FORMATTING
# ═══════════════════════════════════════════════════════════════


def format_number(value: Optional[float]) -> str:
    """1200.0 -> '1200', 99.5 -> '99.5'"""
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_due_date(value: Optional[Union[datetime, date, str]]) -> str:
    """US short date (3/15/2025); unparseable strings render as given"""
    if not value:
        return "No due date"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return f"{value.month}/{value.day}/{value.year}"


def _e(value: Any) -> str:
    return html.escape(str(value))


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<p><a href="{_e(url)}" style="background-color: {color}; color: white; '
        f'padding: 10px 20px; text-decoration: none; border-radius: 5px;">{label}</a></p>'
    )


def _footer(category: str) -> str:
    return (
        "You received this email because you have email notifications "
        f"enabled for {category} updates."
    )


def _html_footer(category: str) -> str:
    return f'<hr>\n<p style="color: #888; font-size: 12px;">{_footer(category)}</p>'


# ═══════════════════════════════════════════════════════════════
# TEMPLATES
# ═══════════════════════════════════════════════════════════════


def _bid_received(data: BidReceivedData) -> EmailContent:
    price = format_number(data.price)
    days = format_number(data.delivery_time_days)
    notes = data.notes or "None"

    body_html = f"""<h2>New Bid Received</h2>
<p>You have received a new bid on your request: <strong>{_e(data.bid_request_title)}</strong></p>
<h3>Bid Details:</h3>
<ul>
  <li><strong>Vendor:</strong> {_e(data.vendor_name)}</li>
  <li><strong>Price:</strong> ${_e(price)}</li>
  <li><strong>Delivery Time:</strong> {_e(days)} days</li>
  <li><strong>Notes:</strong> {_e(notes)}</li>
</ul>
{_button(data.project_url, 'View Bid', '#4CAF50')}
{_html_footer('bidding')}"""

    body_text = (
        "New Bid Received\n\n"
        f"You have received a new bid on your request: {data.bid_request_title}\n\n"
        "Bid Details:\n"
        f"- Vendor: {data.vendor_name}\n"
        f"- Price: ${price}\n"
        f"- Delivery Time: {days} days\n"
        f"- Notes: {notes}\n\n"
        f"View bid: {data.project_url}\n\n"
        f"{_footer('bidding')}"
    )

    return EmailContent(
        subject=f"New Bid Received: {data.bid_request_title}",
        html=body_html,
        text=body_text,
    )


def _task_details_html(data: Union[TaskAssignedData, TaskReassignedData]) -> str:
    return f"""  <li><strong>Project:</strong> {_e(data.project_name)}</li>
  <li><strong>Description:</strong> {_e(data.task_description or 'No description')}</li>
  <li><strong>Priority:</strong> {_e(data.priority)}</li>
  <li><strong>Due Date:</strong> {_e(format_due_date(data.due_date))}</li>"""


def _task_details_text(data: Union[TaskAssignedData, TaskReassignedData]) -> str:
    return (
        f"- Project: {data.project_name}\n"
        f"- Description: {data.task_description or 'No description'}\n"
        f"- Priority: {data.priority}\n"
        f"- Due Date: {format_due_date(data.due_date)}\n"
    )


def _task_assigned(data: TaskAssignedData) -> EmailContent:
    body_html = f"""<h2>New Task Assigned</h2>
<p>You have been assigned a new task: <strong>{_e(data.task_title)}</strong></p>
<h3>Task Details:</h3>
<ul>
{_task_details_html(data)}
  <li><strong>Assigned by:</strong> {_e(data.assigned_by_name)}</li>
</ul>
{_button(data.project_url, 'View Task', '#2196F3')}
{_html_footer('task')}"""

    body_text = (
        "New Task Assigned\n\n"
        f"You have been assigned a new task: {data.task_title}\n\n"
        "Task Details:\n"
        f"{_task_details_text(data)}"
        f"- Assigned by: {data.assigned_by_name}\n\n"
        f"View task: {data.project_url}\n\n"
        f"{_footer('task')}"
    )

    return EmailContent(
        subject=f"Task Assigned: {data.task_title}", html=body_html, text=body_text
    )


def _task_reassigned(data: TaskReassignedData) -> EmailContent:
    body_html = f"""<h2>Task Reassigned to You</h2>
<p>A task has been reassigned to you: <strong>{_e(data.task_title)}</strong></p>
<h3>Task Details:</h3>
<ul>
{_task_details_html(data)}
</ul>
{_button(data.project_url, 'View Task', '#2196F3')}
{_html_footer('task')}"""

    body_text = (
        "Task Reassigned to You\n\n"
        f"A task has been reassigned to you: {data.task_title}\n\n"
        "Task Details:\n"
        f"{_task_details_text(data)}\n"
        f"View task: {data.project_url}\n\n"
        f"{_footer('task')}"
    )

    return EmailContent(
        subject=f"Task Reassigned: {data.task_title}", html=body_html, text=body_text
    )


def _project_member_added(data: ProjectMemberAddedData) -> EmailContent:
    body_html = f"""<h2>Added to Project</h2>
<p>You have been added as a member to the project: <strong>{_e(data.project_name)}</strong></p>
<h3>Project Details:</h3>
<ul>
  <li><strong>Project Type:</strong> {_e(data.project_type)}</li>
  <li><strong>Status:</strong> {_e(data.project_status)}</li>
  <li><strong>Owner:</strong> {_e(data.owner_name)}</li>
  <li><strong>Your Role:</strong> {_e(data.member_role)}</li>
</ul>
{_button(data.project_url, 'View Project', '#FF9800')}
{_html_footer('project')}"""

    body_text = (
        "Added to Project\n\n"
        f"You have been added as a member to the project: {data.project_name}\n\n"
        "Project Details:\n"
        f"- Project Type: {data.project_type}\n"
        f"- Status: {data.project_status}\n"
        f"- Owner: {data.owner_name}\n"
        f"- Your Role: {data.member_role}\n\n"
        f"View project: {data.project_url}\n\n"
        f"{_footer('project')}"
    )

    return EmailContent(
        subject=f"Added to Project: {data.project_name}", html=body_html, text=body_text
    )


def _generic() -> EmailContent:
    return EmailContent(
        subject=f"Notification from {APP_NAME}",
        html="<p>You have a new notification.</p>",
        text="You have a new notification.",
    )


RENDERERS = {
    EventKind.BID_RECEIVED: _bid_received,
    EventKind.TASK_ASSIGNED: _task_assigned,
    EventKind.TASK_REASSIGNED: _task_reassigned,
    EventKind.PROJECT_MEMBER_ADDED: _project_member_added,
}


def render_template(
    event_type: Union[EventKind, str],
    event_data: Union[EventPayload, Dict[str, Any], None] = None,
) -> EmailContent:
    """
    Render subject/html/text for an event.

    event_data may be the typed payload or a dict with camelCase
    (or snake_case) keys. Unknown event types get the generic message.
    """
    try:
        kind = EventKind(event_type)
    except ValueError:
        return _generic()

    model = PAYLOAD_MODELS[kind]
    if isinstance(event_data, model):
        data = event_data
    elif isinstance(event_data, EventPayload):
        data = model.model_validate(event_data.model_dump())
    else:
        data = model.model_validate(event_data or {})

    return RENDERERS[kind](data)
