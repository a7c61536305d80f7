"""
Python client for interacting with the Evoliz REST API.

This package provides an `EvolizClient` class that logs in to Evoliz
with a company's public and secret API keys and makes authenticated
requests to the invoicing endpoints, and an `InvoiceRegistrar` that
turns invoice data into a paid, finalized and emailed invoice.

The client caches the bearer token until its ``expires_at`` instant and
logs in again on the first call after that.

Examples
--------

```python
from evoliz_client import (
    EvolizClient,
    InvoiceItem,
    InvoiceRegistrationRequest,
    InvoiceTerm,
    PayTerm,
    PaymentDetails,
    register_invoice,
)

client = EvolizClient(public_key="YOUR_PUBLIC_KEY", secret_key="YOUR_SECRET_KEY")

result = register_invoice(
    client,
    InvoiceRegistrationRequest(
        external_document_number="EXT001",
        client_id=9876,
        client_email="billing@example.com",
        label="Card payment",
        term=InvoiceTerm(paytermid=PayTerm.WHEN_RECEIVED),
        items=[InvoiceItem(designation="Banana Split", quantity=1, unit_price_vat_exclude=30.25)],
    ),
    PaymentDetails(amount=36.30, paytype_id=3),
)
print(result.invoice_id)
```

The library logs through the standard ``logging`` module under the
``evoliz_client`` logger and is silent until the application configures
logging.  Secret keys and tokens are redacted from every log line.
"""

import logging

from .client import EvolizClient
from .exceptions import EvolizAPIError, EvolizAuthError, EvolizError
from .models import (
    Address,
    ClientRequest,
    ClientType,
    EmailOptions,
    InvoiceItem,
    InvoiceRegistrationRequest,
    InvoiceTerm,
    PaymentDetails,
    PayTerm,
)
from .registration import (
    InvoiceRegistrar,
    RegistrationResult,
    RegistrationStep,
    register_invoice,
)
from .session import Credentials, Session, SessionHandle, SessionManager
from .store import ClientDirectory, JsonFileStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Address",
    "ClientDirectory",
    "ClientRequest",
    "ClientType",
    "Credentials",
    "EmailOptions",
    "EvolizAPIError",
    "EvolizAuthError",
    "EvolizClient",
    "EvolizError",
    "InvoiceItem",
    "InvoiceRegistrar",
    "InvoiceRegistrationRequest",
    "InvoiceTerm",
    "JsonFileStore",
    "PayTerm",
    "PaymentDetails",
    "RegistrationResult",
    "RegistrationStep",
    "Session",
    "SessionHandle",
    "SessionManager",
    "register_invoice",
]
