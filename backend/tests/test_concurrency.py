# Overview: Pytest coverage for optimistic locking, retry handling and document numbering.

import pytest
from datetime import datetime
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from gamestock.models import Game
from gamestock.services import document_service
from gamestock.services.concurrency import run_with_retry


def _locked():
    return OperationalError("UPDATE games", {}, Exception("database is locked"))


class TestOptimisticLocking:
    def test_stale_write_is_detected(self, db_session, zelda):
        assert zelda.version_id == 1

        # Another writer bumps the row behind this session's back
        db_session.execute(
            text("UPDATE games SET version_id = version_id + 1 WHERE id = :id"),
            {"id": zelda.id},
        )
        zelda.stock_with_case = 9

        with pytest.raises(StaleDataError):
            db_session.flush()
        db_session.rollback()

    def test_version_increments_on_write(self, db_session, zelda):
        zelda.stock_with_case = 9
        db_session.commit()
        assert db_session.get(Game, zelda.id).version_id == 2


class TestRunWithRetry:
    def test_retries_operational_errors(self, app):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) < 2:
                raise _locked()
            return "ok"

        assert run_with_retry(_op) == "ok"
        assert len(calls) == 2

    def test_gives_up_after_attempts(self, app):
        calls = []

        def _op():
            calls.append(1)
            raise _locked()

        with pytest.raises(OperationalError):
            run_with_retry(_op, attempts=3)
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self, app):
        calls = []

        def _op():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            run_with_retry(_op)
        assert len(calls) == 1

    def test_extra_retryable_types(self, app):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) == 1:
                raise KeyError("race")
            return len(calls)

        assert run_with_retry(_op, retry_on=(KeyError,)) == 2


class TestDocumentNumbers:
    def test_order_numbers_are_sequential_per_day(self, db_session):
        day = datetime(2025, 1, 15, 9, 30)
        assert document_service.next_order_number(day) == "SB250115001"
        assert document_service.next_order_number(day) == "SB250115002"
        db_session.commit()

        assert document_service.next_order_number(datetime(2025, 1, 16)) == "SB250116001"

    def test_each_document_type_has_its_own_sequence(self, db_session):
        day = datetime(2025, 3, 1)
        assert document_service.next_acquisition_reference(day) == "BUY-20250301-001"
        assert document_service.next_trade_reference(day) == "TRADE-20250301-0001"
        assert document_service.next_acquisition_reference(day) == "BUY-20250301-002"

    def test_uncommitted_numbers_are_released(self, db_session):
        day = datetime(2025, 1, 15)
        assert document_service.next_order_number(day) == "SB250115001"
        db_session.rollback()
        assert document_service.next_order_number(day) == "SB250115001"
