"""Tests for the ledger journal attached to the store logger."""

import logging

from stockledger.utils.logger import LedgerRecordFilter, add_ledger_journal


class TestLedgerJournal:
    """Tests for add_ledger_journal."""

    def test_only_transaction_records_reach_journal(self, tmp_path):
        journal = tmp_path / "logs" / "ledger.log"
        logger = logging.getLogger("journal-test")
        logger.setLevel(logging.INFO)
        logger.propagate = False

        add_ledger_journal(logger, str(journal))
        try:
            logger.info("Loaded 2 items")
            logger.info("Sale: 2 x Mug @ Main Warehouse", extra={"transaction_id": "tx-1"})
            for handler in logger.handlers:
                handler.flush()

            lines = journal.read_text(encoding="utf-8").splitlines()
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

        assert len(lines) == 1
        assert lines[0].endswith("tx-1 Sale: 2 x Mug @ Main Warehouse")

    def test_journal_added_once(self, tmp_path):
        logger = logging.getLogger("journal-once-test")

        add_ledger_journal(logger, str(tmp_path / "ledger.log"))
        add_ledger_journal(logger, str(tmp_path / "ledger.log"))
        try:
            assert len(logger.handlers) == 1
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_filter(self):
        record = logging.LogRecord("store", logging.INFO, __file__, 1, "msg", None, None)

        assert not LedgerRecordFilter().filter(record)
        record.transaction_id = "tx-1"
        assert LedgerRecordFilter().filter(record)


class TestStoreTransitionLogging:
    def test_sale_logged_with_transaction_id(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="store"):
            movement = store.sell("item-simple", None, "W1", 2)

        tagged = [r.transaction_id for r in caplog.records if hasattr(r, "transaction_id")]
        assert tagged == [movement.transaction.id]
