"""
Settlement Service (Domain Logic).

Turns a batch of unpaid ledger entries of one company into a payment.

Flow for complete():
1. Re-validate the selection against current state
2. Recompute from_date server-side
3. Insert Payment
4. Store receipt file, insert Receipt, attach path to Payment (optional)
5. Flip entries to paid with a conditional update (is_paid = false only)
6. Commit

Steps 3-5 share one transaction. If the conditional update touches fewer
rows than selected, another settlement got there first: everything is
rolled back and AlreadySettledError is raised.
"""

import logging
import mimetypes
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buffet_ledger.app.core.clock import Clock, as_utc, utc_today, utcnow
from buffet_ledger.app.core.config import settings
from buffet_ledger.app.core.exceptions import (
    AlreadySettledError,
    EntriesNotFoundError,
    EntryUpdateFailedError,
    MixedCompanyError,
    NoReceiptError,
    ReceiptUploadFailedError,
    ResourceNotFoundError,
    SettlementError,
    SignFailedError,
    ToDateTooEarlyError,
    UnauthenticatedError,
    ValidationError,
)
from buffet_ledger.app.domain.settlement.period_resolver import PeriodResolver
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.ledger_entry import LedgerEntry
from buffet_ledger.app.models.payment import Payment
from buffet_ledger.app.models.receipt import Receipt
from buffet_ledger.app.schemas.auth import SessionData
from buffet_ledger.app.schemas.settlement import MAX_UNIT_PRICE, SettlementProposal, SettlementResult
from buffet_ledger.app.services.receipt_storage import ReceiptStorage, StorageError

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_EXTENSION = "jpg"


@dataclass
class ReceiptUpload:
    """Receipt file supplied with a settlement."""
    content: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


def receipt_extension(upload: ReceiptUpload) -> str:
    """File extension from the upload name, else from the declared content type."""
    if upload.filename and "." in upload.filename:
        ext = upload.filename.rsplit(".", 1)[1].strip().lower()
        if ext.isalnum():
            return ext
    if upload.content_type:
        guessed = mimetypes.guess_extension(upload.content_type)
        if guessed:
            return guessed.lstrip(".")
    return DEFAULT_RECEIPT_EXTENSION


def receipt_storage_path(company_id: int, payment_id: int, upload: ReceiptUpload) -> str:
    return f"{company_id}/{payment_id}.{receipt_extension(upload)}"


def total_count_of(entries: Iterable[LedgerEntry]) -> int:
    return sum(entry.count for entry in entries)


class SettlementService:
    """
    Settlement engine for one request.

    Args:
        db: Database session
        storage: Receipt storage backend
        clock: Returns the current UTC time
    """

    def __init__(self, db: AsyncSession, storage: ReceiptStorage, clock: Clock = utcnow):
        self.db = db
        self.storage = storage
        self.clock = clock

    async def _load_selection(self, entry_ids: Iterable[int]) -> list[LedgerEntry]:
        """
        Load the selected entries and check they can be settled together.

        Raises:
            ValidationError: empty selection
            EntriesNotFoundError: none of the ids resolve
            AlreadySettledError: any entry is already paid
            MixedCompanyError: entries belong to more than one company
        """
        ids = list(dict.fromkeys(entry_ids or []))
        if not ids:
            raise ValidationError("Select at least one entry to settle.", field="entry_ids")

        # populate_existing: never trust paid flags cached in the identity map
        query = (
            select(LedgerEntry)
            .where(LedgerEntry.id.in_(ids))
            .order_by(LedgerEntry.entry_date, LedgerEntry.id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        entries = list(result.scalars().all())

        if not entries:
            raise EntriesNotFoundError()

        if len(entries) != len(ids):
            missing = sorted(set(ids) - {entry.id for entry in entries})
            logger.warning("Ignoring unknown entry ids in settlement selection: %s", missing)

        paid = [entry.id for entry in entries if entry.is_paid]
        if paid:
            raise AlreadySettledError(paid)

        if len({entry.company_id for entry in entries}) != 1:
            raise MixedCompanyError()

        return entries

    async def prepare(self, entry_ids: Iterable[int]) -> SettlementProposal:
        """
        Propose billing parameters for a selection without writing anything.
        """
        entries = await self._load_selection(entry_ids)
        company_id = entries[0].company_id

        company = await self.db.get(Company, company_id)
        from_date = await PeriodResolver.resolve_from_date(
            self.db, company_id, (entry.entry_date for entry in entries)
        )

        return SettlementProposal(
            company_id=company_id,
            company_name=company.name if company else "Unregistered company",
            from_date=from_date,
            to_date=utc_today(self.clock),
            total_count=total_count_of(entries),
            unit_price=settings.default_unit_price,
        )

    async def complete(
        self,
        actor: Optional[SessionData],
        entry_ids: Iterable[int],
        to_date: date,
        unit_price: int,
        receipt: Optional[ReceiptUpload] = None,
    ) -> SettlementResult:
        """
        Settle the selection into a new payment.

        Raises:
            UnauthenticatedError: no actor session
            ValidationError: bad unit price / empty selection
            EntriesNotFoundError, AlreadySettledError, MixedCompanyError
            ToDateTooEarlyError: to_date before the latest entry date
            ReceiptUploadFailedError: receipt could not be stored
            EntryUpdateFailedError: paid flag update failed
        """
        if actor is None:
            raise UnauthenticatedError()

        if isinstance(unit_price, bool) or not isinstance(unit_price, int) or not 0 <= unit_price <= MAX_UNIT_PRICE:
            raise ValidationError(
                f"Unit price must be an integer between 0 and {MAX_UNIT_PRICE:,}.", field="unit_price"
            )

        entries = await self._load_selection(entry_ids)
        ids = [entry.id for entry in entries]
        company_id = entries[0].company_id
        entry_dates = [entry.entry_date for entry in entries]

        latest_entry_date = max(entry_dates)
        if to_date < latest_entry_date:
            raise ToDateTooEarlyError(latest_entry_date)

        from_date = await PeriodResolver.resolve_from_date(self.db, company_id, entry_dates)
        total_count = total_count_of(entries)
        total_amount = total_count * unit_price

        payment = Payment(
            company_id=company_id,
            from_date=from_date,
            to_date=to_date,
            total_count=total_count,
            unit_price=unit_price,
            total_amount=total_amount,
            paid_at=as_utc(self.clock()),
            paid_by=actor.subject_id,
        )

        stored_path = None
        try:
            self.db.add(payment)
            await self.db.flush()  # To get payment.id

            if receipt is not None and receipt.content:
                path = receipt_storage_path(company_id, payment.id, receipt)
                try:
                    await self.storage.upload(
                        path, receipt.content, receipt.content_type or "application/octet-stream"
                    )
                except StorageError as exc:
                    logger.exception("Receipt upload failed for payment %s", payment.id)
                    raise ReceiptUploadFailedError() from exc
                stored_path = path

                self.db.add(Receipt(payment_id=payment.id, file_path=path, uploaded_by=actor.subject_id))
                payment.receipt_path = path
                await self.db.flush()

            try:
                result = await self.db.execute(
                    update(LedgerEntry)
                    .where(LedgerEntry.id.in_(ids), LedgerEntry.is_paid.is_(False))
                    .values(is_paid=True, payment_id=payment.id)
                    .execution_options(synchronize_session=False)
                )
            except SQLAlchemyError as exc:
                logger.exception("Marking entries paid failed for payment %s", payment.id)
                raise EntryUpdateFailedError() from exc

            if result.rowcount != len(ids):
                logger.warning(
                    "Settlement race lost for entries %s: %s of %s still unpaid",
                    ids, result.rowcount, len(ids),
                )
                raise AlreadySettledError(ids)

            await self.db.commit()
        except (SettlementError, SQLAlchemyError):
            await self.db.rollback()
            if stored_path:
                await self._discard_receipt(stored_path)
            raise

        for entry in entries:
            entry.is_paid = True
            entry.payment_id = payment.id

        message = f"Payment completed ({total_count:,} guests at {unit_price:,} each)."
        if stored_path:
            message += "\nReceipt uploaded."

        logger.info(
            "Payment %s settled %d entries for company %s (%s..%s, amount %s)",
            payment.id, len(ids), company_id, from_date, to_date, total_amount,
        )

        return SettlementResult(
            payment_id=payment.id,
            company_id=company_id,
            from_date=from_date,
            to_date=to_date,
            total_count=total_count,
            unit_price=unit_price,
            total_amount=total_amount,
            receipt_path=stored_path,
            message=message,
        )

    async def _discard_receipt(self, path: str) -> None:
        try:
            await self.storage.delete(path)
        except StorageError:
            logger.exception("Could not remove orphaned receipt %s", path)

    async def issue_receipt_access_url(self, session: Optional[SessionData], payment_id: int) -> str:
        """
        Time-limited download URL for a payment's receipt.

        Raises:
            UnauthenticatedError, ResourceNotFoundError, NoReceiptError, SignFailedError
        """
        if session is None:
            raise UnauthenticatedError()

        payment = await self.db.get(Payment, payment_id)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)

        if not payment.receipt_path:
            raise NoReceiptError()

        try:
            return await self.storage.create_signed_url(
                payment.receipt_path, settings.receipt_url_expire_seconds
            )
        except StorageError as exc:
            logger.exception("Signing receipt URL failed for payment %s", payment_id)
            raise SignFailedError() from exc
