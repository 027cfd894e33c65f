"""Tests for energy_reader.cli."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from energy_reader.adapters.base import RepositoryError
from energy_reader.cli import AppContext, cli
from energy_reader.models import Feedback, TariffFlag, User

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from energy_reader.models import BillRecord


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def bills(make_bill: Callable[..., BillRecord]) -> list[BillRecord]:
    """Two bills for one user, newest first."""
    return [
        make_bill(
            id="bill-2",
            processed_at=datetime(2025, 6, 15, tzinfo=UTC),
            consumption_kwh=280,
            total_value=Decimal("300.00"),
            tariff_flag=TariffFlag.RED,
        ),
        make_bill(
            id="bill-1",
            processed_at=datetime(2025, 5, 15, tzinfo=UTC),
            consumption_kwh=200,
            total_value=Decimal("200.00"),
        ),
    ]


@pytest.fixture
def app(bills: list[BillRecord]) -> AppContext:
    repository = MagicMock()
    repository.list_bills.return_value = bills
    repository.list_users.return_value = [
        User(
            id="user-1",
            email="ana@example.com",
            name="Ana",
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
        )
    ]
    return AppContext(repository=repository, file_store=MagicMock())


class TestCli:
    """Tests for the energy-reader command group."""

    def test_missing_configuration_is_usage_error(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("ENERGY_READER_BACKEND", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)

        result = runner.invoke(cli, ["metrics"])

        assert result.exit_code == 2
        assert "DATABASE_URL" in result.output

    def test_insights(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(cli, ["insights", "--user-id", "user-1"], obj=app)

        assert result.exit_code == 0, result.output
        app.repository.list_bills.assert_called_once_with("user-1")  # type: ignore[attr-defined]
        assert "[warning] Consumption increased 40.0%" in result.output
        assert "[warning] Red tariff flag active" in result.output

    def test_insights_needs_two_bills(
        self, runner: CliRunner, app: AppContext, bills: list[BillRecord]
    ) -> None:
        app.repository.list_bills.return_value = bills[:1]  # type: ignore[attr-defined]

        result = runner.invoke(cli, ["insights", "--user-id", "user-1"], obj=app)

        assert result.exit_code == 0
        assert "Not enough bills" in result.output

    def test_analytics(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(cli, ["analytics", "--period", "all"], obj=app)

        assert result.exit_code == 0, result.output
        assert "2 bills (period: all)" in result.output
        assert "2025-05" in result.output
        assert "Growth: +40.0%" in result.output
        assert "São Paulo" in result.output

    def test_metrics(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(cli, ["metrics"], obj=app)

        assert result.exit_code == 0, result.output
        assert "Bills processed:     2" in result.output
        assert "Users:               1" in result.output
        assert "Average consumption: 240 kWh" in result.output

    def test_export_bills(
        self, runner: CliRunner, app: AppContext, tmp_path: Path
    ) -> None:
        output = tmp_path / "report.csv"

        result = runner.invoke(
            cli, ["export", "bills", "--user-id", "user-1", "-o", str(output)], obj=app
        )

        assert result.exit_code == 0, result.output
        content = output.read_text(encoding="utf-8")
        assert content.startswith("ENERGYREADER REPORT\n")
        assert content.count("\n") == 7
        assert f"Report written to {output}" in result.output

    def test_export_users(
        self, runner: CliRunner, app: AppContext, tmp_path: Path
    ) -> None:
        output = tmp_path / "users.csv"

        result = runner.invoke(cli, ["export", "users", "-o", str(output)], obj=app)

        assert result.exit_code == 0, result.output
        assert '"Ana","ana@example.com","User"' in output.read_text(encoding="utf-8")

    def test_repository_error_reported(
        self, runner: CliRunner, app: AppContext
    ) -> None:
        app.repository.list_bills.side_effect = RepositoryError("Query failed")  # type: ignore[attr-defined]

        result = runner.invoke(cli, ["metrics"], obj=app)

        assert result.exit_code == 1
        assert "Query failed" in result.output

    def test_feedback(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(
            cli,
            [
                "feedback",
                "submit",
                "bill-1",
                "consumption_kwh",
                "280",
                "--user-id",
                "user-1",
            ],
            obj=app,
        )

        assert result.exit_code == 0, result.output
        app.repository.submit_feedback.assert_called_once_with(  # type: ignore[attr-defined]
            "bill-1", "consumption_kwh", "280", "user-1"
        )

    def test_ingest(
        self,
        runner: CliRunner,
        app: AppContext,
        bills: list[BillRecord],
        tmp_path: Path,
    ) -> None:
        upload = tmp_path / "conta.pdf"
        upload.write_bytes(b"pdf")
        app.file_store.save.return_value = "user-1/1_conta.pdf"  # type: ignore[attr-defined]
        app.repository.save_bill.return_value = bills[0]  # type: ignore[attr-defined]

        result = runner.invoke(
            cli, ["ingest", str(upload), "--user-id", "user-1"], obj=app
        )

        assert result.exit_code == 0, result.output
        assert "Saved bill bill-2: 280 kWh, R$ 300.00, red flag" in result.output


class TestFeedbackList:
    """Tests for the feedback list command."""

    @pytest.fixture
    def corrections(self, app: AppContext) -> AppContext:
        app.repository.list_feedback.return_value = [  # type: ignore[attr-defined]
            Feedback(
                id=f"fb-{status}-{i}",
                bill_id=f"bill-{i}",
                field_corrected="consumption_kwh",
                correct_value=str(250 + i),
                user_id="user-1",
                status=status,
                created_at=datetime(2025, 6, 1 + i, tzinfo=UTC),
            )
            for i, status in enumerate(["pending", "pending", "approved", "rejected"])
        ]
        return app

    def test_counts_per_status(self, runner: CliRunner, corrections: AppContext) -> None:
        result = runner.invoke(cli, ["feedback", "list"], obj=corrections)

        assert result.exit_code == 0, result.output
        assert "pending: 2  approved: 1  rejected: 1" in result.output
        assert result.output.count("consumption_kwh ->") == 4

    def test_filter_by_status(self, runner: CliRunner, corrections: AppContext) -> None:
        result = runner.invoke(
            cli, ["feedback", "list", "--status", "approved"], obj=corrections
        )

        assert result.exit_code == 0, result.output
        assert "pending: 2  approved: 1  rejected: 1" in result.output
        assert "bill bill-2  consumption_kwh -> 252" in result.output
        assert result.output.count("consumption_kwh ->") == 1

    def test_empty(self, runner: CliRunner, app: AppContext) -> None:
        app.repository.list_feedback.return_value = []  # type: ignore[attr-defined]

        result = runner.invoke(cli, ["feedback", "list"], obj=app)

        assert result.exit_code == 0
        assert "pending: 0  approved: 0  rejected: 0" in result.output

    def test_unknown_status_rejected(self, runner: CliRunner, app: AppContext) -> None:
        result = runner.invoke(cli, ["feedback", "list", "--status", "done"], obj=app)

        assert result.exit_code == 2

    def test_repository_error(self, runner: CliRunner, app: AppContext) -> None:
        app.repository.list_feedback.side_effect = RepositoryError("Query failed")  # type: ignore[attr-defined]

        result = runner.invoke(cli, ["feedback", "list"], obj=app)

        assert result.exit_code == 1
        assert "Query failed" in result.output
