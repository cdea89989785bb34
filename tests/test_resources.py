"""Tests for the resource route table and its multi-call actions."""

from __future__ import annotations

import httpx
import pytest

from xeroshowcase.connectors.xero_client import XeroApiClient
from xeroshowcase.errors import UpstreamApiError
from xeroshowcase.resources.actions import ATTACHMENT_FILE, REPORTS
from xeroshowcase.resources.base import ResourceDownload, ResourceRoute, ResourceSummary
from xeroshowcase.resources.registry import ResourceRegistry

from conftest import PDF_BYTES, FakeXero


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry.builtin()


def _route(registry: ResourceRegistry, path: str) -> ResourceRoute:
    return next(route for route in registry if route.path == path)


def _xero(fake_xero: FakeXero) -> XeroApiClient:
    return XeroApiClient(
        "access-token",
        "tenant-1",
        api_url="https://api.xero.com/api.xro/2.0",
        http=httpx.AsyncClient(transport=fake_xero.transport),
    )


class TestRegistry:
    def test_builtin_table(self, registry: ResourceRegistry) -> None:
        paths = [route.path for route in registry]
        assert len(registry) >= 25
        for expected in ("accounts", "banktransactions", "contacts", "invoices", "reports", "quotes"):
            assert expected in paths
        assert len(paths) == len(set(paths))

    def test_crud_routes_have_id_fields(self, registry: ResourceRegistry) -> None:
        assert _route(registry, "accounts").id_field == "AccountID"
        assert _route(registry, "contacts").id_field == "ContactID"

    def test_invoice_action_routes(self, registry: ResourceRegistry) -> None:
        for path in ("invoice-as-pdf", "email-invoice", "attachment-invoice"):
            assert _route(registry, path).action is not None

    def test_register_duplicate(self, registry: ResourceRegistry) -> None:
        with pytest.raises(ValueError, match="already registered"):
            registry.register(ResourceRoute("invoices", "Again", "Invoices", "Invoices"))

    def test_register_reserved(self) -> None:
        with pytest.raises(ValueError, match="reserved"):
            ResourceRegistry([ResourceRoute("callback", "Nope", "Invoices", "Invoices")])

    def test_register_custom(self) -> None:
        registry = ResourceRegistry()
        registry.register(ResourceRoute("linked", "Linked Transactions", "LinkedTransactions", "LinkedTransactions"))
        assert [r.url_path for r in registry] == ["/linked"]


class TestRouteRun:
    @pytest.mark.asyncio
    async def test_default_count(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "invoices").run(xero)

        assert summary == ResourceSummary(resource="invoices", title="Invoices", count=2)
        assert len(fake_xero.api_calls) == 1

    @pytest.mark.asyncio
    async def test_empty_collection(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "creditnotes").run(xero)
        assert summary.count == 0

    @pytest.mark.asyncio
    async def test_response_key_differs_from_endpoint(
        self, registry: ResourceRegistry, fake_xero: FakeXero
    ) -> None:
        async with _xero(fake_xero) as xero:
            orgs = await _route(registry, "organisations").run(xero)
            reminders = await _route(registry, "invoicereminders").run(xero)

        assert orgs.count == 1
        assert reminders.count == 1
        assert fake_xero.api_calls[0].url.path.endswith("/Organisation")

    @pytest.mark.asyncio
    async def test_filtered_invoices_params(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            await _route(registry, "invoices-filtered").run(xero)

        params = fake_xero.api_calls[0].url.params
        assert params["where"] == 'Type=="ACCREC"'
        assert params["Statuses"] == "PAID,DRAFT"
        assert params["order"] == "Reference DESC"

    @pytest.mark.asyncio
    async def test_accounts_walkthrough(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "accounts").run(xero)

        assert summary.count == 3
        assert summary.details["Created"].startswith("Foo")
        assert summary.details["Fetched"] == summary.details["Created"]
        assert summary.details["Updated"] == summary.details["Created"] + "-updated"
        assert [r.method for r in fake_xero.api_calls] == ["GET", "PUT", "GET", "POST"]

    @pytest.mark.asyncio
    async def test_contacts_walkthrough(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "contacts").run(xero)

        assert summary.count == 1
        assert summary.details["Updated"].endswith("-updated")
        assert fake_xero.collections["Contacts"][-1]["Name"] == summary.details["Updated"]

    @pytest.mark.asyncio
    async def test_walkthrough_stops_on_failure(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        fake_xero.failures["Accounts"] = (400, {"Message": "A validation exception occurred"})

        async with _xero(fake_xero) as xero:
            with pytest.raises(UpstreamApiError):
                await _route(registry, "accounts").run(xero)
        assert len(fake_xero.api_calls) == 1

    @pytest.mark.asyncio
    async def test_reports_summary(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "reports").run(xero)

        assert summary.count == len(REPORTS)
        assert summary.details["TrialBalance"] == "TrialBalance 31 March 2025"
        assert len(fake_xero.api_calls) == len(REPORTS)


class TestInvoiceActions:
    @pytest.mark.asyncio
    async def test_invoice_as_pdf(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            result = await _route(registry, "invoice-as-pdf").run(xero)

        assert isinstance(result, ResourceDownload)
        assert result.content == PDF_BYTES
        assert result.media_type == "application/pdf"
        assert result.filename == "invoice-as-pdf.pdf"
        pdf_request = fake_xero.api_calls[-1]
        assert pdf_request.url.path.endswith("/Invoices/inv-1")
        assert pdf_request.headers["Accept"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_email_invoice_from_query(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "email-invoice").run(xero, {"invoiceID": "inv-2"})

        assert fake_xero.emailed == ["inv-2"]
        assert summary.details == {"Emailed": "inv-2"}
        assert [r.method for r in fake_xero.api_calls] == ["POST"]

    @pytest.mark.asyncio
    async def test_email_first_sales_invoice(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            await _route(registry, "email-invoice").run(xero)

        assert fake_xero.emailed == ["inv-1"]
        assert fake_xero.api_calls[0].url.params["where"] == 'Type=="ACCREC"'

    @pytest.mark.asyncio
    async def test_email_failure_is_upstream_error(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        fake_xero.failures["Invoices/inv-1/Email"] = (400, {"Message": "Invoice has no contact email"})

        async with _xero(fake_xero) as xero:
            with pytest.raises(UpstreamApiError) as excinfo:
                await _route(registry, "email-invoice").run(xero, {"invoiceID": "inv-1"})
        assert "no contact email" in excinfo.value.body

    @pytest.mark.asyncio
    async def test_attachment_invoice(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        async with _xero(fake_xero) as xero:
            summary = await _route(registry, "attachment-invoice").run(xero)

        assert summary.count == 1
        assert summary.details["Invoice"] == "inv-1"
        assert summary.details["FileName"] == ATTACHMENT_FILE.name
        assert summary.details["MimeType"].startswith("image/")

        uploaded = fake_xero.attachments[0]
        assert uploaded["content"] == ATTACHMENT_FILE.read_bytes()
        upload_request = fake_xero.api_calls[-1]
        assert upload_request.method == "PUT"
        assert upload_request.url.params["IncludeOnline"] == "true"
        assert fake_xero.api_calls[0].url.params["Statuses"] == "PAID"

    @pytest.mark.asyncio
    async def test_no_invoices(self, registry: ResourceRegistry, fake_xero: FakeXero) -> None:
        fake_xero.collections["Invoices"] = []

        async with _xero(fake_xero) as xero:
            with pytest.raises(UpstreamApiError, match="no invoices"):
                await _route(registry, "invoice-as-pdf").run(xero)
        assert len(fake_xero.api_calls) == 1
