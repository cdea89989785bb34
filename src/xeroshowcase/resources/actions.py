"""
Multi-call resource actions: create/read/update walkthroughs, reports and
invoice PDF, email and attachment actions.
"""

from __future__ import annotations

import logging
import mimetypes
import random
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from xeroshowcase.errors import UpstreamApiError
from xeroshowcase.resources.base import ResourceDownload, ResourceRoute, ResourceSummary

if TYPE_CHECKING:
    from xeroshowcase.connectors.xero_client import XeroApiClient

logger = logging.getLogger("xeroshowcase.resources.actions")


def _random_suffix() -> int:
    return random.randint(0, 999_999)


def _first(data: dict[str, Any], key: str, endpoint: str) -> dict[str, Any]:
    items = data.get(key) or []
    if not items:
        raise UpstreamApiError(f"Xero API {endpoint} returned no {key}", endpoint=endpoint)
    return items[0]


def new_account() -> dict[str, Any]:
    n = _random_suffix()
    return {"Name": f"Foo{n}", "Code": f"c:{n}", "Type": "EXPENSE"}


def new_contact() -> dict[str, Any]:
    n = _random_suffix()
    return {"Name": f"Bar{n}", "FirstName": "Demo", "LastName": f"Contact {n}"}


async def _create_read_update(
    xero: XeroApiClient,
    route: ResourceRoute,
    record: dict[str, Any],
    create_body: dict[str, Any],
) -> ResourceSummary:
    key, id_field = route.collection, route.id_field or ""

    # GET ALL
    existing = await xero.get_collection(route.endpoint, key)

    # CREATE
    created = _first(await xero.put(route.endpoint, create_body), key, route.endpoint)
    record_id = created.get(id_field)
    if not record_id:
        raise UpstreamApiError(f"Created record has no {id_field}", endpoint=route.endpoint)

    # GET ONE
    fetched = _first(await xero.get(f"{route.endpoint}/{record_id}"), key, route.endpoint)

    # UPDATE
    updated_name = f"{record['Name']}-updated"
    updated = _first(
        await xero.post(f"{route.endpoint}/{record_id}", {key: [{"Name": updated_name}]}),
        key,
        route.endpoint,
    )

    logger.info("Ran create/read/update walkthrough on %s", route.endpoint)
    return ResourceSummary(
        resource=route.path,
        title=route.title,
        count=len(existing),
        details={
            "Created": str(created.get("Name", "")),
            "Fetched": str(fetched.get("Name", "")),
            "Updated": str(updated.get("Name", "")),
        },
    )


async def accounts_walkthrough(
    xero: XeroApiClient, route: ResourceRoute, query: Mapping[str, str]
) -> ResourceSummary:
    """List accounts, then create, read back and rename one."""
    account = new_account()
    return await _create_read_update(xero, route, account, account)


async def contacts_walkthrough(
    xero: XeroApiClient, route: ResourceRoute, query: Mapping[str, str]
) -> ResourceSummary:
    """List contacts, then create, read back and rename one."""
    contact = new_contact()
    return await _create_read_update(xero, route, contact, {route.collection: [contact]})


# Report endpoint -> fixed query parameters
REPORTS: dict[str, dict[str, Any]] = {
    "Reports/BalanceSheet": {"periods": 3, "timeframe": "QUARTER", "standardLayout": "true"},
    "Reports/ProfitAndLoss": {"periods": 3, "timeframe": "QUARTER", "standardLayout": "true"},
    "Reports/TrialBalance": {"paymentsOnly": "false"},
    "Reports/BankSummary": {},
    "Reports/BudgetSummary": {"periods": 6, "timeframe": 3},
    "Reports/ExecutiveSummary": {},
}


async def reports_summary(
    xero: XeroApiClient, route: ResourceRoute, query: Mapping[str, str]
) -> ResourceSummary:
    """Fetch each standard report and list its name and date."""
    details: dict[str, str] = {}
    for endpoint, params in REPORTS.items():
        report = _first(await xero.get(endpoint, params=params or None), "Reports", endpoint)
        name = report.get("ReportName", endpoint.split("/", 1)[1])
        details[name] = f"{name} {report.get('ReportDate', '')}".strip()
    return ResourceSummary(resource=route.path, title=route.title, count=len(details), details=details)


# ---------------------------------------------------------------------------
# Invoice actions
# ---------------------------------------------------------------------------

ATTACHMENT_FILE = Path(__file__).parent / "assets" / "xero-dev.svg"


async def _first_invoice_id(xero: XeroApiClient, params: dict[str, Any] | None = None) -> str:
    invoices = await xero.get_collection("Invoices", "Invoices", params=params)
    if not invoices or not invoices[0].get("InvoiceID"):
        raise UpstreamApiError("Xero API Invoices returned no invoices", endpoint="Invoices")
    return invoices[0]["InvoiceID"]


async def invoice_as_pdf(
    xero: XeroApiClient, route: ResourceRoute, query: Mapping[str, str]
) -> ResourceDownload:
    """Download the first invoice rendered as PDF."""
    invoice_id = await _first_invoice_id(xero)
    content = await xero.get_binary(f"Invoices/{invoice_id}", accept="application/pdf")
    logger.info("Fetched invoice as PDF (%d bytes)", len(content))
    return ResourceDownload(
        resource=route.path,
        filename="invoice-as-pdf.pdf",
        media_type="application/pdf",
        content=content,
    )


async def email_invoice(
    xero: XeroApiClient, route: ResourceRoute, query: Mapping[str, str]
) -> ResourceSummary:
    """Have Xero email an invoice to its contact.

    Uses ``?invoiceID=`` when given, otherwise the first sales invoice.
    """
    invoice_id = query.get("invoiceID") or await _first_invoice_id(xero, {"where": 'Type=="ACCREC"'})
    await xero.post(f"Invoices/{invoice_id}/Email", {})
    return ResourceSummary(resource=route.path, title=route.title, details={"Emailed": invoice_id})


async def attach_to_invoice(
    xero: XeroApiClient, route: ResourceRoute, query: Mapping[str, str]
) -> ResourceSummary:
    """Upload the bundled image as an attachment to the first paid invoice."""
    invoice_id = await _first_invoice_id(xero, {"Statuses": "PAID"})
    filename = ATTACHMENT_FILE.name
    content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

    data = await xero.upload(
        f"Invoices/{invoice_id}/Attachments/{filename}",
        ATTACHMENT_FILE.read_bytes(),
        content_type,
        params={"IncludeOnline": "true"},
    )
    attachments = data.get("Attachments") or []
    if not attachments:
        raise UpstreamApiError("Attachment upload returned no attachment", endpoint="Attachments")

    attachment = attachments[0]
    return ResourceSummary(
        resource=route.path,
        title=route.title,
        count=len(attachments),
        details={
            "Invoice": invoice_id,
            "FileName": str(attachment.get("FileName", "")),
            "MimeType": str(attachment.get("MimeType", "")),
        },
    )
