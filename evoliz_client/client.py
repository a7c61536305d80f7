"""
Client implementation for the Evoliz REST API.

This module defines the :class:`EvolizClient` class which logs in to
Evoliz with a company's public and secret API keys and performs JSON
requests against the versioned API endpoints.  Tokens are cached by a
:class:`~evoliz_client.session.SessionManager` until their
``expires_at`` instant and renewed on the next call after that.

Usage
-----

.. code-block:: python

    from evoliz_client import EvolizClient

    client = EvolizClient(public_key="pub", secret_key="secret")

    customer = client.create_client(
        {
            "name": "Triiptic",
            "type": "Professionnel",
            "address": {"postcode": "83130", "town": "La Garde", "iso2": "FR"},
        }
    )
    payterms = client.list_payterms()

Every call raises :class:`~evoliz_client.exceptions.EvolizAPIError`
when the provider answers with an error status; nothing is retried and a
``401`` does not trigger a new login.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import requests

from .exceptions import EvolizAPIError
from .models import ClientRequest, EmailOptions, to_payload
from .session import Credentials, SessionManager, redact

_BODY_METHODS = {"POST", "PUT", "PATCH"}


class EvolizClient:
    """A small client for the Evoliz REST API.

    Parameters
    ----------
    public_key : str
        Your Evoliz API public key.
    secret_key : str
        Your Evoliz API secret key.  It is only sent to the login
        endpoint and never logged.
    base_url : str, optional
        Root of the API, without the version segment.  Defaults to
        :attr:`DEFAULT_BASE_URL`.
    api_version : str, optional
        Version segment inserted between ``base_url`` and every endpoint
        path.  Defaults to ``"v1"``.
    timeout : float, optional
        Default timeout in seconds for each HTTP request.
    logger : logging.Logger, optional
        Logger receiving request tracing and login decisions.
    session_manager : SessionManager, optional
        Share an existing token cache instead of creating one.  The key
        arguments are ignored when this is given.
    """

    DEFAULT_BASE_URL = "https://www.evoliz.io/api"
    DEFAULT_API_VERSION = "v1"

    def __init__(
        self,
        *,
        public_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        session_manager: Optional[SessionManager] = None,
    ) -> None:
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.api_version = (api_version or self.DEFAULT_API_VERSION).strip("/")
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        if session_manager is None:
            if not public_key:
                raise ValueError("public_key must be provided")
            if not secret_key:
                raise ValueError("secret_key must be provided")
            session_manager = SessionManager(
                Credentials(public_key=public_key, secret_key=secret_key),
                base_url=self.base_url,
                timeout=timeout,
                logger=logger,
            )
        self.session_manager = session_manager

    @classmethod
    def from_env(cls, **kwargs: Any) -> "EvolizClient":
        """Build a client from ``EVOLIZ_*`` environment variables.

        ``EVOLIZ_PUBLIC_KEY`` and ``EVOLIZ_SECRET_KEY`` are required;
        ``EVOLIZ_BASE_URL`` and ``EVOLIZ_API_VERSION`` are optional.
        Keyword arguments take precedence over the environment.
        """
        settings = {
            "public_key": os.environ.get("EVOLIZ_PUBLIC_KEY"),
            "secret_key": os.environ.get("EVOLIZ_SECRET_KEY"),
            "base_url": os.environ.get("EVOLIZ_BASE_URL"),
            "api_version": os.environ.get("EVOLIZ_API_VERSION"),
        }
        settings.update(kwargs)
        return cls(**settings)

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _prepare_url(self, path: str) -> str:
        """Build ``{base_url}/{api_version}/{path}``; absolute URLs pass through."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{self.api_version}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform an authenticated HTTP request against the Evoliz API.

        Parameters
        ----------
        method : str
            The HTTP verb, such as ``"GET"`` or ``"POST"``.
        path : str
            The endpoint path relative to the versioned API root.
        params : dict, optional
            Query parameters to include in the request.
        json : object, optional
            A JSON-serialisable body, sent for POST, PUT and PATCH.
        headers : dict, optional
            Additional HTTP headers.  ``Authorization`` cannot be
            overridden.
        timeout : float, optional
            Timeout in seconds; defaults to the client's timeout.

        Returns
        -------
        Any
            The parsed JSON body, or the raw text when the body is not
            JSON.

        Raises
        ------
        EvolizAPIError
            If the request cannot be sent or the status is 400 or above.
        EvolizAuthError
            If a login is needed and fails.
        """
        method = method.upper()
        url = self._prepare_url(path)
        token = self.session_manager.get_token()
        req_headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if headers:
            for key, value in headers.items():
                if key.lower() == "authorization":
                    continue
                req_headers[key] = value
        req_headers["Authorization"] = f"Bearer {token}"

        body = json if method in _BODY_METHODS else None
        if body is not None:
            self.logger.info("%s %s %s", method, url, redact(body))
        else:
            self.logger.info("%s %s", method, url)
        try:
            response = requests.request(
                method=method,
                url=url,
                params=params,
                json=body,
                headers=req_headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            self.logger.error("%s %s failed: %s", method, url, exc)
            raise EvolizAPIError(f"Failed to connect to {url}: {exc}", url=url) from exc

        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text

        if response.status_code >= 400:
            self.logger.error(
                "%s %s returned %s %s: %s",
                method,
                url,
                response.status_code,
                response.reason,
                redact(payload),
            )
            raise EvolizAPIError(
                f"{response.status_code} {response.reason} Error for {url}: {redact(payload)}",
                status_code=response.status_code,
                reason=response.reason,
                url=url,
                body=payload,
            )

        self.logger.debug("%s %s returned %s", method, url, response.status_code)
        return payload

    # ------------------------------------------------------------------
    # Public convenience methods
    # ------------------------------------------------------------------
    def get(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a GET request.

        See :meth:`_request` for full parameter documentation.
        """
        return self._request("GET", path, params=params, headers=headers, timeout=timeout)

    def post(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a POST request.

        See :meth:`_request` for full parameter documentation.
        """
        return self._request(
            "POST", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def patch(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PATCH request."""
        return self._request(
            "PATCH", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def put(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PUT request."""
        return self._request(
            "PUT", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def delete(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a DELETE request."""
        return self._request("DELETE", path, params=params, headers=headers, timeout=timeout)

    # ------------------------------------------------------------------
    # Evoliz endpoints
    # ------------------------------------------------------------------
    def create_client(self, data: Union[ClientRequest, Mapping[str, Any]]) -> Dict[str, Any]:
        """Create a client; the response carries its ``clientid``."""
        return self.post("clients", json=to_payload(data))

    def create_sale_order(self, external_document_number: str, client_id: int) -> Dict[str, Any]:
        """Create a sale order; the response carries its ``orderid``."""
        return self.post(
            "sale-orders",
            json={
                "external_document_number": external_document_number,
                "clientid": client_id,
            },
        )

    def create_invoice(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a draft invoice; the response carries its ``invoiceid``."""
        return self.post("invoices", json=to_payload(data))

    def pay_invoice(self, invoice_id: int, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Record a payment on an invoice."""
        return self.post(f"invoices/{invoice_id}/payments", json=dict(data))

    def save_invoice(self, invoice_id: int) -> Dict[str, Any]:
        """Finalize a draft invoice into a locked, numbered document."""
        return self.post(f"invoices/{invoice_id}/create", json={})

    def send_invoice(
        self,
        invoice_id: int,
        to: Sequence[str],
        options: Optional[Union[EmailOptions, Mapping[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Email an invoice to the given recipients."""
        if not to:
            raise ValueError("at least one recipient is required")
        payload: Dict[str, Any] = {"to": list(to)}
        if options is not None:
            payload.update(to_payload(options))
        return self.post(f"invoices/{invoice_id}/send", json=payload)

    def list_payterms(self) -> List[Dict[str, Any]]:
        """Return the company's payment terms."""
        response = self.get("payterms")
        if isinstance(response, dict) and "data" in response:
            return response["data"] or []
        return response
