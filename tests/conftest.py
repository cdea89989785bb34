"""Shared fixtures: a fake Xero identity/API service behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from xeroshowcase.auth.manager import AuthorizationSessionManager
from xeroshowcase.config import ServerConfig, ShowcaseConfig, XeroConfig
from xeroshowcase.web.app import create_app

API_PREFIX = "/api.xro/2.0/"

# Endpoints whose response key differs from the endpoint name
_RESPONSE_KEYS = {
    "Organisation": "Organisations",
    "InvoiceReminders/Settings": "InvoiceReminders",
}

_ID_FIELDS = {
    "Accounts": "AccountID",
    "Contacts": "ContactID",
    "Invoices": "InvoiceID",
}

ID_CLAIMS = {"email": "demo@example.com", "given_name": "Demo", "family_name": "User"}

PDF_BYTES = b"%PDF-1.4\n% fake invoice\n%%EOF\n"


class FakeXero:
    """Minimal stand-in for identity.xero.com and api.xero.com."""

    def __init__(self) -> None:
        self.valid_codes: set[str] = {"GOOD", "OTHER"}
        self.consumed_codes: set[str] = set()
        self.issued = 0
        self.refresh_tokens: set[str] = set()
        self.calls: list[httpx.Request] = []
        self.failures: dict[str, tuple[int, dict[str, Any]]] = {}
        self.emailed: list[str] = []
        self.attachments: list[dict[str, Any]] = []
        self.tenants: list[dict[str, Any]] = [
            {"tenantId": "tenant-1", "tenantName": "Demo Company (US)", "tenantType": "ORGANISATION"},
            {"tenantId": "tenant-2", "tenantName": "Second Org", "tenantType": "ORGANISATION"},
        ]
        self.collections: dict[str, list[dict[str, Any]]] = {
            "Accounts": [
                {"AccountID": "acc-1", "Name": "Sales", "Code": "200"},
                {"AccountID": "acc-2", "Name": "Rent", "Code": "469"},
                {"AccountID": "acc-3", "Name": "Wages", "Code": "477"},
            ],
            "Contacts": [{"ContactID": "con-1", "Name": "ABC Furniture"}],
            "Invoices": [{"InvoiceID": "inv-1"}, {"InvoiceID": "inv-2"}],
            "Organisations": [{"Name": "Demo Company (US)"}],
            "InvoiceReminders": [{"Enabled": True}],
        }

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == path]

    @property
    def token_calls(self) -> list[httpx.Request]:
        return self.calls_to("/connect/token")

    @property
    def api_calls(self) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path.startswith(API_PREFIX)]

    # ------------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path
        if path == "/connect/token":
            return self._token(request)
        if path == "/connections":
            if "connections" in self.failures:
                status, body = self.failures["connections"]
                return httpx.Response(status, json=body)
            return httpx.Response(200, json=self.tenants)
        if path.startswith(API_PREFIX):
            return self._api(request, path[len(API_PREFIX):])
        return httpx.Response(404, json={"Message": "Not found"})

    def _issue(self) -> dict[str, Any]:
        self.issued += 1
        refresh = f"refresh-{self.issued}"
        self.refresh_tokens.add(refresh)
        return {
            "access_token": f"access-{self.issued}",
            "refresh_token": refresh,
            "id_token": jwt.encode(ID_CLAIMS, "test-signing-key", algorithm="HS256"),
            "token_type": "Bearer",
            "expires_in": 1800,
            "scope": "openid offline_access accounting.transactions",
        }

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        grant = form.get("grant_type")
        if grant == "authorization_code":
            code = form.get("code", "")
            if code not in self.valid_codes or code in self.consumed_codes:
                return httpx.Response(400, json={"error": "invalid_grant"})
            self.consumed_codes.add(code)
            return httpx.Response(200, json=self._issue())
        if grant == "refresh_token":
            if form.get("refresh_token") not in self.refresh_tokens:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self._issue())
        return httpx.Response(400, json={"error": "unsupported_grant_type"})

    def _api(self, request: httpx.Request, endpoint: str) -> httpx.Response:
        if endpoint in self.failures:
            status, body = self.failures[endpoint]
            return httpx.Response(status, json=body)

        if endpoint.startswith("Reports/"):
            name = endpoint.split("/", 1)[1]
            return httpx.Response(200, json={"Reports": [{"ReportName": name, "ReportDate": "31 March 2025"}]})

        parts = endpoint.split("/")
        if len(parts) == 3 and parts[2] == "Email" and request.method == "POST":
            self.emailed.append(parts[1])
            return httpx.Response(204)
        if len(parts) == 4 and parts[2] == "Attachments" and request.method == "PUT":
            attachment = {
                "AttachmentID": f"att-{len(self.attachments) + 1}",
                "FileName": parts[3],
                "MimeType": request.headers.get("Content-Type", ""),
                "ContentLength": len(request.content),
            }
            self.attachments.append({**attachment, "InvoiceID": parts[1], "content": request.content})
            return httpx.Response(200, json={"Attachments": [attachment]})
        if request.headers.get("Accept") == "application/pdf":
            return httpx.Response(200, content=PDF_BYTES, headers={"Content-Type": "application/pdf"})

        base, _, record_id = endpoint.partition("/")
        key = _RESPONSE_KEYS.get(endpoint, base)
        items = self.collections.setdefault(key, [])

        if record_id and endpoint not in _RESPONSE_KEYS:
            id_field = _ID_FIELDS.get(key, "ID")
            match = next((i for i in items if i.get(id_field) == record_id), None)
            if match is None:
                return httpx.Response(404, json={"Message": f"{record_id} not found"})
            if request.method == "POST":
                match.update(json.loads(request.content)[key][0])
            return httpx.Response(200, json={key: [match]})

        if request.method == "PUT":
            body = json.loads(request.content)
            record = dict(body[key][0] if key in body else body)
            record[_ID_FIELDS.get(key, "ID")] = f"{key.lower()}-new-{len(items) + 1}"
            items.append(record)
            return httpx.Response(200, json={key: [record]})

        return httpx.Response(200, json={key: list(items)})


@pytest.fixture
def fake_xero() -> FakeXero:
    return FakeXero()


@pytest.fixture
def config() -> ShowcaseConfig:
    return ShowcaseConfig(
        xero=XeroConfig(
            client_id="abc",
            client_secret="xyz",
            redirect_uri="http://localhost:5000/callback",
        ),
        server=ServerConfig(session_secret="test-session-secret"),
    )


@pytest.fixture
def manager(config: ShowcaseConfig, fake_xero: FakeXero) -> AuthorizationSessionManager:
    return AuthorizationSessionManager(config, transport=fake_xero.transport)


@pytest.fixture
def client(config: ShowcaseConfig, fake_xero: FakeXero) -> TestClient:
    return TestClient(create_app(config, transport=fake_xero.transport))
