"""
Resource Registry — the table of demo pages served by the web app.

Supports the built-in Xero table and manual registration of extra routes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from xeroshowcase.resources.actions import (
    accounts_walkthrough,
    attach_to_invoice,
    contacts_walkthrough,
    email_invoice,
    invoice_as_pdf,
    reports_summary,
)
from xeroshowcase.resources.base import ResourceRoute

logger = logging.getLogger("xeroshowcase.resources.registry")

_BUILTIN_ROUTES: list[ResourceRoute] = [
    ResourceRoute("accounts", "Accounts", "Accounts", "Accounts", id_field="AccountID", action=accounts_walkthrough),
    ResourceRoute("banktransactions", "Bank Transactions", "BankTransactions", "BankTransactions"),
    ResourceRoute("banktransfers", "Bank Transfers", "BankTransfers", "BankTransfers"),
    ResourceRoute("batchpayments", "Batch Payments", "BatchPayments", "BatchPayments"),
    ResourceRoute("brandingthemes", "Branding Themes", "BrandingThemes", "BrandingThemes"),
    ResourceRoute("contacts", "Contacts", "Contacts", "Contacts", id_field="ContactID", action=contacts_walkthrough),
    ResourceRoute("contactgroups", "Contact Groups", "ContactGroups", "ContactGroups"),
    ResourceRoute("creditnotes", "Credit Notes", "CreditNotes", "CreditNotes"),
    ResourceRoute("currencies", "Currencies", "Currencies", "Currencies"),
    ResourceRoute("employees", "Employees", "Employees", "Employees"),
    ResourceRoute("expenseclaims", "Expense Claims", "ExpenseClaims", "ExpenseClaims"),
    ResourceRoute("invoicereminders", "Invoice Reminders", "InvoiceReminders/Settings", "InvoiceReminders"),
    ResourceRoute("invoices", "Invoices", "Invoices", "Invoices"),
    ResourceRoute("invoice-as-pdf", "Invoice as PDF", "Invoices", "Invoices", action=invoice_as_pdf),
    ResourceRoute("email-invoice", "Email Invoice", "Invoices", "Invoices", action=email_invoice),
    ResourceRoute("attachment-invoice", "Invoice Attachment", "Invoices", "Attachments", action=attach_to_invoice),
    ResourceRoute(
        "invoices-filtered",
        "Invoices (paid or draft receivables)",
        "Invoices",
        "Invoices",
        params={
            "where": 'Type=="ACCREC"',
            "order": "Reference DESC",
            "Statuses": "PAID,DRAFT",
            "page": 1,
        },
    ),
    ResourceRoute("items", "Items", "Items", "Items"),
    ResourceRoute("journals", "Journals", "Journals", "Journals"),
    ResourceRoute("manualjournals", "Manual Journals", "ManualJournals", "ManualJournals"),
    ResourceRoute("organisations", "Organisations", "Organisation", "Organisations"),
    ResourceRoute("overpayments", "Overpayments", "Overpayments", "Overpayments"),
    ResourceRoute("payments", "Payments", "Payments", "Payments"),
    ResourceRoute("paymentservices", "Payment Services", "PaymentServices", "PaymentServices"),
    ResourceRoute("prepayments", "Prepayments", "Prepayments", "Prepayments"),
    ResourceRoute("purchaseorders", "Purchase Orders", "PurchaseOrders", "PurchaseOrders"),
    ResourceRoute("receipts", "Receipts", "Receipts", "Receipts"),
    ResourceRoute("reports", "Reports", "Reports", "Reports", action=reports_summary),
    ResourceRoute("taxrates", "Tax Rates", "TaxRates", "TaxRates"),
    ResourceRoute("trackingcategories", "Tracking Categories", "TrackingCategories", "TrackingCategories"),
    ResourceRoute("users", "Users", "Users", "Users"),
    ResourceRoute("quotes", "Quotes", "Quotes", "Quotes"),
]

# Paths the authorization routes already use
RESERVED_PATHS = frozenset({"", "callback", "refresh-token", "logout", "change_organisation"})


class ResourceRegistry:
    """Ordered collection of resource routes, unique by path."""

    def __init__(self, routes: list[ResourceRoute] | None = None) -> None:
        self._routes: dict[str, ResourceRoute] = {}
        for route in routes or []:
            self.register(route)

    @classmethod
    def builtin(cls) -> ResourceRegistry:
        return cls(_BUILTIN_ROUTES)

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[ResourceRoute]:
        return iter(self._routes.values())

    def register(self, route: ResourceRoute) -> None:
        """Register a route; its path must be new and not an auth path."""
        if route.path in RESERVED_PATHS:
            raise ValueError(f"Path '/{route.path}' is reserved for authorization")
        if route.path in self._routes:
            raise ValueError(f"Resource route '/{route.path}' already registered")
        self._routes[route.path] = route
        logger.debug("Registered resource route: /%s", route.path)
