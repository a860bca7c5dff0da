"""Static field catalog per import target, plus header aliases for auto-mapping."""

from __future__ import annotations

from ferry.core.exceptions import UnknownTargetError
from ferry.models.field import DataType, FieldDefinition
from ferry.models.job import ImportStatus, ImportTarget

_F = FieldDefinition

CLIENT_STATUSES = ("active", "past", "potential", "inactive")
LEAD_SOURCES = (
    "referral", "google", "social_media", "yard_sign",
    "vehicle_wrap", "website", "repeat", "other",
)
PROJECT_STATUSES = (
    "lead", "bidding", "planning", "active", "on_hold", "completed", "cancelled",
)
LOG_TYPES = ("call", "email", "text", "meeting", "site_visit", "other")
LOG_DIRECTIONS = ("inbound", "outbound")


FIELD_CATALOG: dict[ImportTarget, tuple[FieldDefinition, ...]] = {
    ImportTarget.CLIENTS: (
        _F(name="displayName", label="Client Name", required=True, example="John Smith"),
        _F(name="email", label="Email", type=DataType.EMAIL, example="john@example.com"),
        _F(name="phone", label="Phone", type=DataType.PHONE, example="(555) 123-4567"),
        _F(name="companyName", label="Company", example="Smith Construction"),
        _F(name="address.street", label="Street Address", example="123 Main St"),
        _F(name="address.city", label="City", example="Austin"),
        _F(name="address.state", label="State", example="TX"),
        _F(name="address.zip", label="ZIP Code", example="78701"),
        _F(name="status", label="Status", type=DataType.ENUM,
           enum_values=CLIENT_STATUSES, example="active"),
        _F(name="source", label="Lead Source", type=DataType.ENUM,
           enum_values=LEAD_SOURCES, example="referral"),
        _F(name="notes", label="Notes", example="Referred by Jane Doe"),
    ),
    ImportTarget.PROJECTS: (
        _F(name="name", label="Project Name", required=True, example="Kitchen Remodel"),
        _F(name="clientEmail", label="Client Email", type=DataType.EMAIL,
           description="Used to link to existing client", example="john@example.com"),
        _F(name="clientName", label="Client Name",
           description="Alternative to client email for lookup", example="John Smith"),
        _F(name="address.street", label="Project Address", example="123 Main St"),
        _F(name="address.city", label="City", example="Austin"),
        _F(name="address.state", label="State", example="TX"),
        _F(name="address.zip", label="ZIP Code", example="78701"),
        _F(name="budget", label="Budget", type=DataType.CURRENCY, example="50000"),
        _F(name="status", label="Status", type=DataType.ENUM,
           enum_values=PROJECT_STATUSES, example="active"),
        _F(name="startDate", label="Start Date", type=DataType.DATE, example="2026-02-01"),
        _F(name="estimatedEndDate", label="End Date", type=DataType.DATE, example="2026-04-15"),
        _F(name="description", label="Description", example="Full kitchen renovation"),
    ),
    ImportTarget.CONTACTS: (
        _F(name="name", label="Contact Name", required=True, example="Jane Smith"),
        _F(name="email", label="Email", type=DataType.EMAIL, example="jane@example.com"),
        _F(name="phone", label="Phone", type=DataType.PHONE, example="(555) 987-6543"),
        _F(name="role", label="Role/Title", example="Site Manager"),
        _F(name="clientEmail", label="Client Email", type=DataType.EMAIL,
           description="Links contact to client", example="john@example.com"),
        _F(name="clientName", label="Client Name",
           description="Alternative to client email for lookup", example="John Smith"),
        _F(name="isPrimary", label="Primary Contact", type=DataType.BOOLEAN, example="true"),
        _F(name="notes", label="Notes", example="Prefers text messages"),
    ),
    ImportTarget.COMMUNICATION_LOGS: (
        _F(name="date", label="Date", type=DataType.DATE, required=True, example="2026-01-15"),
        _F(name="type", label="Type", type=DataType.ENUM, required=True,
           enum_values=LOG_TYPES, example="call"),
        _F(name="clientEmail", label="Client Email", type=DataType.EMAIL,
           description="Links log to client", example="john@example.com"),
        _F(name="clientName", label="Client Name",
           description="Alternative to client email for lookup", example="John Smith"),
        _F(name="summary", label="Summary", required=True, example="Discussed project timeline"),
        _F(name="notes", label="Notes", example="Follow up next week"),
        _F(name="direction", label="Direction", type=DataType.ENUM,
           enum_values=LOG_DIRECTIONS, example="outbound"),
    ),
}


# Keyed by field name, shared across targets.
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "displayName": ("name", "client name", "client", "full name", "customer name", "customer"),
    "email": ("email", "email address", "e-mail", "client email", "contact email"),
    "phone": ("phone", "phone number", "telephone", "mobile", "cell", "contact phone"),
    "companyName": ("company", "company name", "business", "business name", "organization"),
    "address.street": ("street", "address", "street address", "address line 1", "address 1"),
    "address.city": ("city", "town"),
    "address.state": ("state", "province", "region"),
    "address.zip": ("zip", "zip code", "postal code", "postcode"),
    "status": ("status", "client status", "state"),
    "source": ("source", "lead source", "referral source", "how did you hear"),
    "notes": ("notes", "comments", "description", "memo"),
    "budget": ("budget", "amount", "total", "value", "contract value"),
    "startDate": ("start date", "start", "begin date", "commencement"),
    "estimatedEndDate": ("end date", "finish date", "completion date", "due date"),
    "date": ("date", "log date", "communication date", "call date"),
    "type": ("type", "communication type", "log type", "category"),
    "summary": ("summary", "subject", "topic", "title"),
    "role": ("role", "title", "position", "job title"),
    "isPrimary": ("primary", "is primary", "main contact", "primary contact"),
    "direction": ("direction", "inbound/outbound", "in/out"),
}


TARGET_INFO: dict[ImportTarget, dict[str, str]] = {
    ImportTarget.CLIENTS: {
        "label": "Clients",
        "description": "Import client records with contact info, addresses, and status",
    },
    ImportTarget.PROJECTS: {
        "label": "Projects",
        "description": "Import project records and optionally link to existing clients",
    },
    ImportTarget.CONTACTS: {
        "label": "Contacts",
        "description": "Import additional contacts and link to existing clients",
    },
    ImportTarget.COMMUNICATION_LOGS: {
        "label": "Communication Logs",
        "description": "Import call/email/meeting logs for client history",
    },
}

STATUS_LABELS: dict[ImportStatus, str] = {
    ImportStatus.UPLOADING: "Uploading",
    ImportStatus.MAPPING: "Mapping Columns",
    ImportStatus.VALIDATING: "Validating",
    ImportStatus.IMPORTING: "Importing",
    ImportStatus.COMPLETED: "Completed",
    ImportStatus.FAILED: "Failed",
    ImportStatus.ROLLED_BACK: "Rolled Back",
}

# Applied at persistence time when the upload leaves the field blank.
TARGET_DEFAULTS: dict[ImportTarget, dict[str, str]] = {
    ImportTarget.CLIENTS: {"status": "potential"},
    ImportTarget.PROJECTS: {"status": "lead"},
}


def _coerce_target(target: ImportTarget | str) -> ImportTarget:
    try:
        return ImportTarget(target)
    except ValueError as exc:
        raise UnknownTargetError(f"Unknown import target: {target!r}") from exc


def fields_for(target: ImportTarget | str) -> list[FieldDefinition]:
    """Return the catalog fields for a target, in display order."""
    return list(FIELD_CATALOG[_coerce_target(target)])


def field_for(target: ImportTarget | str, name: str) -> FieldDefinition | None:
    for definition in FIELD_CATALOG[_coerce_target(target)]:
        if definition.name == name:
            return definition
    return None


def aliases_for(field_name: str) -> list[str]:
    return list(HEADER_ALIASES.get(field_name, ()))


def target_info(target: ImportTarget | str) -> dict[str, str]:
    return dict(TARGET_INFO[_coerce_target(target)])


def defaults_for(target: ImportTarget | str) -> dict[str, str]:
    return dict(TARGET_DEFAULTS.get(_coerce_target(target), {}))
