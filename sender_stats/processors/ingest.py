"""
Ingestion processor: Gmail -> per-sender counts in PostgreSQL.

Walks the whole message listing page by page. Messages already in seen_mails
are skipped without being fetched, so re-running the job only does work for
new mail. Each new message is fetched, its sender normalized, and the sender
count and seen-mark written in one transaction.

There is no per-message error isolation: any failure aborts the pass, and the
pass is restarted from the first page up to max_retries more times.
"""

import argparse
import sys

from sender_stats.config import settings
from sender_stats.core.database import Database
from sender_stats.core.errors import RetriesExhaustedError, SenderStatsError
from sender_stats.core.logging import bind_context, clear_context, configure_logging, get_logger
from sender_stats.core.models import MessageStub
from sender_stats.core.senders import get_sender, sender_header
from sender_stats.processors.base import BaseProcessor
from sender_stats.services.gmail import GmailClient

log = get_logger(__name__)


class IngestProcessor(BaseProcessor):
    """
    Count messages per sender across an entire mailbox.

    Safe to run repeatedly: a message is counted at most once because its id is
    committed to seen_mails in the same transaction as the count increment.
    """

    def __init__(
        self,
        db: Database | None = None,
        client: GmailClient | None = None,
        max_retries: int | None = None,
    ):
        self.db = db or Database()
        self.client = client or GmailClient()
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.stats = self._new_stats()

    @staticmethod
    def _new_stats() -> dict:
        return {"pages": 0, "listed": 0, "processed": 0, "skipped": 0, "missing_sender": 0}

    def process(self) -> dict:
        """
        Run full passes until one succeeds or the retry budget is spent.

        Returns:
            Statistics of the successful pass

        Raises:
            RetriesExhaustedError: If all 1 + max_retries attempts failed
        """
        attempts = self.max_retries + 1
        last_error: SenderStatsError | None = None

        for attempt in range(1, attempts + 1):
            try:
                self.db.ensure_connection()
                return self.run_pass()
            except SenderStatsError as e:
                last_error = e
                log.error(
                    "ingest_pass_failed",
                    attempt=attempt,
                    max_attempts=attempts,
                    error_type=type(e).__name__,
                    error=str(e),
                )

        log.critical("ingest_retries_exhausted", attempts=attempts)
        raise RetriesExhaustedError(attempts) from last_error

    def run_pass(self) -> dict:
        """One traversal of every listing page, starting from the first."""
        self.stats = self._new_stats()
        log.info("ingest_pass_starting", page_size=self.client.page_size)

        page_token = None
        while True:
            page = self.client.list_page(page_token)
            self.stats["pages"] += 1
            self.stats["listed"] += len(page.stubs)
            log.info(
                "ingest_page_listed",
                page=self.stats["pages"],
                count=len(page.stubs),
                has_next=not page.is_last,
            )

            self.process_page(page.stubs)

            if page.is_last:
                break
            page_token = page.next_page_token

        log.info("ingest_pass_complete", **self.stats)
        return self.stats

    def process_page(self, stubs: list[MessageStub]) -> None:
        """Process stubs strictly in listing order."""
        for stub in stubs:
            if self.process_message(stub):
                self.stats["processed"] += 1
            else:
                self.stats["skipped"] += 1

    def process_message(self, stub: MessageStub) -> bool:
        """
        Count one message unless it was already seen.

        The seen check, the fetch and both writes share a transaction.

        Returns:
            True if the message was counted, False if it was skipped
        """
        bind_context(message_id=stub.id)
        try:
            with self.db.unit_of_work() as uow:
                if uow.seen.has_seen(stub.id):
                    return False

                message = self.client.get_message(stub.id)
                raw_sender = sender_header(message)
                if raw_sender is None:
                    self.stats["missing_sender"] += 1
                    log.warning(
                        "message_missing_sender_header",
                        header_names=[header.name for header in message.headers],
                    )
                else:
                    log.info("message_sender", from_header=raw_sender)

                sender = get_sender(message)
                mails_sent = uow.senders.increment(sender)
                uow.seen.mark_seen(stub.id)
                log.debug("sender_counted", sender=sender, mails_sent=mails_sent)
                return True
        finally:
            clear_context()

    def report(self, limit: int = 10) -> None:
        """Log the senders with the most messages."""
        seen = self.db.count_seen()
        log.info("report_seen_messages", total=seen)
        for rank, row in enumerate(self.db.top_senders(limit), start=1):
            log.info("top_sender", rank=rank, sender=row.sender, mails_sent=row.mails_sent)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for one ingestion run."""
    parser = argparse.ArgumentParser(
        description="Count Gmail messages per sender into PostgreSQL (safe to re-run)"
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Colored console output instead of JSON lines",
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create the seen_mails and senders tables if they do not exist",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=0,
        metavar="N",
        help="After a successful run, log the N senders with the most messages",
    )

    args = parser.parse_args(argv)

    configure_logging(
        log_level=args.log_level,
        json_output=False if args.console_logs else None,
    )

    db = Database()
    processor = IngestProcessor(db=db)
    try:
        if args.init_schema:
            db.ensure_connection()
            db.init_schema()

        stats = processor.process()

        if args.top > 0:
            processor.report(args.top)
    except RetriesExhaustedError:
        sys.exit(1)
    except SenderStatsError as e:
        log.critical("ingest_aborted", error_type=type(e).__name__, error=str(e))
        sys.exit(1)
    finally:
        db.close()

    log.info(
        "ingest_summary",
        processed=stats["processed"],
        skipped=stats["skipped"],
        missing_sender=stats["missing_sender"],
        pages=stats["pages"],
    )


if __name__ == "__main__":
    main()
