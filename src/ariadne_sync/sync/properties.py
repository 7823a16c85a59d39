"""Conversion between local records and Notion page properties.

Push direction builds the ``properties`` payload of a page create/update
call.  Pull direction reads a page's ``properties`` object back into a
record.  Readers are tolerant: a property that is missing or has an
unexpected type reads as empty.  Record validation (enum values such as
``Status`` or ``Stage``) happens when the pydantic model is built, so a
page with an unknown select option raises ``pydantic.ValidationError``.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel

from ariadne_sync.sync.merger import merge_interactions, render_notes
from ariadne_sync.sync.models import (
    Contact,
    Job,
    JobStatus,
    Task,
    TaskStatus,
)

# ---------------------------------------------------------------------------
# Property value builders
# ---------------------------------------------------------------------------


def _title(text: str | None) -> dict:
    return {"title": [{"text": {"content": text or ""}}]}


def _rich_text(text: str | None) -> dict:
    return {"rich_text": [{"text": {"content": text or ""}}]}


def _select(name: str) -> dict:
    return {"select": {"name": name}}


def _date(start: str) -> dict:
    return {"date": {"start": start}}


# ---------------------------------------------------------------------------
# Local -> remote
# ---------------------------------------------------------------------------


def job_to_properties(job: Job) -> dict[str, Any]:
    props: dict[str, Any] = {
        "Role": _title(job.role),
        "Company": _rich_text(job.company),
        "Status": _select(job.status.value),
        "URL": {"url": job.url or None},
    }
    if job.stage:
        props["Stage"] = _select(job.stage.value)
    if job.next:
        props["Next Action"] = _rich_text(job.next)
    if job.outcome:
        props["Outcome"] = _select(job.outcome.value)
    if job.reason:
        props["Skip Reason"] = _rich_text(job.reason)
    if job.added:
        props["Added"] = _date(job.added)
    if job.updated:
        props["Updated"] = _date(job.updated)
    if job.closed:
        props["Closed"] = _date(job.closed)
    if job.folder:
        props["Folder"] = _rich_text(job.folder)
    return props


def contact_to_properties(contact: Contact) -> dict[str, Any]:
    props: dict[str, Any] = {"Name": _title(contact.name)}
    if contact.company:
        props["Company"] = _rich_text(contact.company)
    if contact.title:
        props["Title"] = _rich_text(contact.title)
    if contact.email:
        props["Email"] = {"email": contact.email}
    if contact.linkedin:
        props["LinkedIn"] = {"url": contact.linkedin}
    if contact.source:
        props["Source"] = _rich_text(contact.source)
    if contact.added:
        props["Added"] = _date(contact.added)
    if contact.interactions:
        props["Notes"] = _rich_text(render_notes(contact.interactions))
    return props


def task_to_properties(task: Task) -> dict[str, Any]:
    props: dict[str, Any] = {
        "Task": _title(task.task),
        "Done": {"checkbox": task.status == TaskStatus.COMPLETED},
    }
    if task.due:
        props["Due"] = _date(task.due)
    if task.created:
        props["Created"] = _date(task.created)
    return props


# ---------------------------------------------------------------------------
# Remote property readers
# ---------------------------------------------------------------------------


def read_text(prop: dict | None) -> str:
    """Concatenated plain text of a title or rich_text property."""
    if not prop:
        return ""
    kind = prop.get("type")
    if kind not in ("title", "rich_text"):
        return ""
    return "".join(part.get("plain_text", "") for part in prop.get(kind) or [])


def read_select(prop: dict | None) -> str | None:
    if not prop or prop.get("type") != "select" or not prop.get("select"):
        return None
    return prop["select"].get("name")


def read_date(prop: dict | None) -> str | None:
    if not prop or prop.get("type") != "date" or not prop.get("date"):
        return None
    return prop["date"].get("start") or None


def read_checkbox(prop: dict | None) -> bool:
    if not prop or prop.get("type") != "checkbox":
        return False
    return bool(prop.get("checkbox"))


def read_url(prop: dict | None) -> str | None:
    if not prop or prop.get("type") != "url":
        return None
    return prop.get("url")


def read_email(prop: dict | None) -> str | None:
    if not prop or prop.get("type") != "email":
        return None
    return prop.get("email")


# ---------------------------------------------------------------------------
# Remote -> local
# ---------------------------------------------------------------------------


def _extras(existing: BaseModel | None) -> dict[str, Any]:
    if existing is None:
        return {}
    return dict(existing.model_extra or {})


def properties_to_job(
    props: dict[str, Any], existing: Job | None = None
) -> Job:
    """Build a job from page properties.

    A missing ``Status`` reads as Active.  Optional text fields that are
    empty remotely are left unset.  Unknown fields of *existing* are kept.
    """
    fields: dict[str, Any] = {
        **_extras(existing),
        "company": read_text(props.get("Company")),
        "role": read_text(props.get("Role")),
        "status": read_select(props.get("Status")) or JobStatus.ACTIVE,
        "url": read_url(props.get("URL")),
        "added": read_date(props.get("Added")),
        "updated": read_date(props.get("Updated")),
        "stage": read_select(props.get("Stage")),
        "next": read_text(props.get("Next Action")) or None,
        "outcome": read_select(props.get("Outcome")),
        "reason": read_text(props.get("Skip Reason")) or None,
        "closed": read_date(props.get("Closed")),
        "folder": read_text(props.get("Folder")) or None,
    }
    return Job.model_validate(fields)


def slugify(name: str) -> str:
    """Contact id derived from a name: ``"Ada Lovelace"`` -> ``"ada-lovelace"``."""
    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def properties_to_contact(
    props: dict[str, Any], existing: Contact | None, today: str
) -> Contact:
    """Build a contact from page properties.

    Fields the remote side does not carry (``id``, ``introducedBy``) come
    from *existing*.  Interactions parsed from ``Notes`` are merged into
    the existing log, never replacing it.
    """
    name = read_text(props.get("Name"))
    interactions = list(existing.interactions) if existing else []
    contact_id = existing.id if existing else slugify(name)
    fields: dict[str, Any] = {
        **_extras(existing),
        "id": contact_id,
        "name": name,
        "company": read_text(props.get("Company")) or None,
        "title": read_text(props.get("Title")) or None,
        "email": read_email(props.get("Email")) or None,
        "linkedin": read_url(props.get("LinkedIn")) or None,
        "source": read_text(props.get("Source")) or None,
        "introducedBy": existing.introduced_by if existing else None,
        "added": read_date(props.get("Added"))
        or (existing.added if existing else None)
        or today,
        "interactions": merge_interactions(
            interactions, read_text(props.get("Notes"))
        ),
    }
    return Contact.model_validate(fields)


def properties_to_task(
    props: dict[str, Any],
    existing: Task | None,
    today: str,
    new_id: str,
) -> Task:
    """Build a task from page properties.

    Links to contacts and jobs are local-only and carried over from
    *existing*.  A task ticked ``Done`` keeps its completion date, or gets
    *today* when it has none.

    Args:
        new_id: Id to use when there is no existing task.
    """
    done = read_checkbox(props.get("Done"))
    fields: dict[str, Any] = {
        **_extras(existing),
        "id": existing.id if existing else new_id,
        "task": read_text(props.get("Task")),
        "due": read_date(props.get("Due")),
        "linkedContacts": list(existing.linked_contacts) if existing else [],
        "linkedJobs": list(existing.linked_jobs) if existing else [],
        "status": TaskStatus.COMPLETED if done else TaskStatus.PENDING,
        "created": read_date(props.get("Created"))
        or (existing.created if existing else None)
        or today,
    }
    if done:
        fields["completed"] = (existing.completed if existing else None) or today
    return Task.model_validate(fields)
