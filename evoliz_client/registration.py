"""
Invoice registration: create, pay, save and email an invoice.

The four provider calls run strictly in order, each one depending on
the ``invoiceid`` returned by the first.  The first failure aborts the
sequence and is re-raised unchanged; nothing is compensated on the
provider side.  Pass a checkpoint store to make a failed registration
resumable: completed steps are recorded under the invoice's external
document number and skipped when :meth:`InvoiceRegistrar.register` is
called again for the same number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .exceptions import EvolizAPIError, EvolizError
from .models import InvoiceRegistrationRequest, PaymentDetails, to_payload

if TYPE_CHECKING:
    from .client import EvolizClient
    from .store import JsonFileStore


class RegistrationStep(str, Enum):
    CREATE = "create"
    PAY = "pay"
    SAVE = "save"
    SEND = "send"


STEPS = (
    RegistrationStep.CREATE,
    RegistrationStep.PAY,
    RegistrationStep.SAVE,
    RegistrationStep.SEND,
)


@dataclass
class RegistrationResult:
    """Outcome of a registration.

    ``responses`` only holds the steps run by this call; steps restored
    from a checkpoint are listed in ``completed`` but have no response.
    """

    external_document_number: str
    invoice_id: Optional[int] = None
    completed: List[RegistrationStep] = field(default_factory=list)
    responses: Dict[RegistrationStep, Any] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return RegistrationStep.SEND in self.completed


class InvoiceRegistrar:
    """Run the create -> pay -> save -> send sequence for invoices.

    Parameters
    ----------
    client : EvolizClient
        Client used for the four provider calls.
    checkpoints : JsonFileStore, optional
        Store receiving the progress of each registration.  Without it a
        failed registration cannot be resumed.
    logger : logging.Logger, optional
        Logger receiving step progress and failures.
    today : callable, optional
        Returns the date used as document and payment date.  Defaults to
        :meth:`datetime.date.today`.
    """

    def __init__(
        self,
        client: "EvolizClient",
        *,
        checkpoints: Optional["JsonFileStore"] = None,
        logger: Optional[logging.Logger] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.client = client
        self.checkpoints = checkpoints
        self.logger = logger or logging.getLogger(__name__)
        self._today = today or date.today

    def register(
        self, request: InvoiceRegistrationRequest, payment: PaymentDetails
    ) -> RegistrationResult:
        """Create, pay, save and email the invoice described by ``request``.

        Raises
        ------
        EvolizAPIError
            If a provider call fails; later steps are not attempted.
        EvolizAuthError
            If logging in fails.
        EvolizError
            If the saved checkpoint for this invoice is malformed.
        """
        result = self._restore(request.external_document_number)
        today = self._today().isoformat()

        for step in STEPS:
            if step in result.completed:
                continue
            try:
                response = self._run_step(step, request, payment, result, today)
            except Exception:
                self.logger.error(
                    "Invoice %s: step %r failed (invoice id %s, completed %s)",
                    request.external_document_number,
                    step.value,
                    result.invoice_id,
                    [s.value for s in result.completed] or "nothing",
                )
                raise
            result.responses[step] = response
            result.completed.append(step)
            self._checkpoint(result)
            self.logger.info(
                "Invoice %s: %s done (invoice id %s)",
                request.external_document_number,
                step.value,
                result.invoice_id,
            )

        if self.checkpoints is not None:
            self.checkpoints.delete(self._checkpoint_key(request.external_document_number))
        return result

    def _run_step(
        self,
        step: RegistrationStep,
        request: InvoiceRegistrationRequest,
        payment: PaymentDetails,
        result: RegistrationResult,
        today: str,
    ) -> Any:
        if step is RegistrationStep.CREATE:
            response = self.client.create_invoice(
                {
                    "external_document_number": request.external_document_number,
                    "documentdate": today,
                    "clientid": request.client_id,
                    "term": to_payload(request.term),
                    "items": request.items_payload(),
                }
            )
            invoice_id = response.get("invoiceid") if isinstance(response, dict) else None
            if not isinstance(invoice_id, int) or isinstance(invoice_id, bool):
                raise EvolizAPIError(
                    f"Invoice creation response has no invoiceid: {response!r}",
                    body=response,
                )
            result.invoice_id = invoice_id
            return response

        assert result.invoice_id is not None
        if step is RegistrationStep.PAY:
            return self.client.pay_invoice(
                result.invoice_id,
                {
                    "paydate": today,
                    "label": payment.label or request.label,
                    "paytypeid": payment.paytype_id,
                    "amount": payment.amount,
                },
            )
        if step is RegistrationStep.SAVE:
            return self.client.save_invoice(result.invoice_id)
        return self.client.send_invoice(result.invoice_id, [request.client_email])

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------
    @staticmethod
    def _checkpoint_key(external_document_number: str) -> str:
        return f"registration:{external_document_number}"

    def _restore(self, external_document_number: str) -> RegistrationResult:
        result = RegistrationResult(external_document_number=external_document_number)
        if self.checkpoints is None:
            return result
        key = self._checkpoint_key(external_document_number)
        saved = self.checkpoints.get(key)
        if not saved:
            return result
        if not isinstance(saved, dict):
            raise EvolizError(f"Checkpoint {key!r} is not an object: {saved!r}")
        try:
            completed = [RegistrationStep(value) for value in saved.get("completed") or []]
        except ValueError as exc:
            raise EvolizError(f"Checkpoint {key!r} has an unknown step: {exc}") from exc
        if completed != list(STEPS[: len(completed)]):
            raise EvolizError(f"Checkpoint {key!r} has steps out of order: {saved!r}")
        invoice_id = saved.get("invoice_id")
        if completed and (not isinstance(invoice_id, int) or isinstance(invoice_id, bool)):
            raise EvolizError(
                f"Checkpoint {key!r} lists completed steps but no invoice id: {saved!r}"
            )
        result.invoice_id = invoice_id
        result.completed = completed
        self.logger.info(
            "Invoice %s: resuming after %s (invoice id %s)",
            external_document_number,
            [s.value for s in result.completed],
            result.invoice_id,
        )
        return result

    def _checkpoint(self, result: RegistrationResult) -> None:
        if self.checkpoints is None:
            return
        self.checkpoints.set(
            self._checkpoint_key(result.external_document_number),
            {
                "invoice_id": result.invoice_id,
                "completed": [step.value for step in result.completed],
            },
        )


def register_invoice(
    client: "EvolizClient",
    request: InvoiceRegistrationRequest,
    payment: PaymentDetails,
) -> RegistrationResult:
    """Register one invoice without checkpoints.  See :class:`InvoiceRegistrar`."""
    return InvoiceRegistrar(client).register(request, payment)
