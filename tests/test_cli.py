"""
Tests for the command line interface
"""

import pytest

from cueledger.cli import build_parser, main
from cueledger.core.credits import CreditLedger
from cueledger.persistence import open_store


@pytest.fixture
def db_url(temp_db):
    return f"sqlite:///{temp_db}"


class TestCli:

    def test_parser_defaults(self):
        args = build_parser().parse_args(["report"])
        assert args.command == "report"
        assert args.period == "daily"

    def test_add_and_list_stations(self, db_url, capsys):
        main(["--database-url", db_url, "init-db"])
        main(["--database-url", db_url, "add-station", "Corner Table", "--type", "billiard", "--rate", "90"])
        main(["--database-url", db_url, "stations"])

        out = capsys.readouterr().out
        assert "Station added: STN-" in out
        assert "Corner Table" in out
        assert "90/h" in out

    def test_settle_credit(self, db_url, capsys):
        store = open_store(db_url)
        credit = CreditLedger(store).open_credit("Walk-in Wanda", 40)

        main(["--database-url", db_url, "credits", "--search", "wanda"])
        main(["--database-url", db_url, "settle", credit.credit_id])

        out = capsys.readouterr().out
        assert "Walk-in Wanda" in out
        assert "Total: 40 across 1 credit(s)" in out
        assert f"Credit {credit.credit_id} settled" in out

    def test_ledger_error_exits_nonzero(self, db_url, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--database-url", db_url, "settle", "CRD-missing"])

        assert exc_info.value.code == 1
        assert "Credit not found" in capsys.readouterr().out

    def test_report_prints_summary(self, db_url, capsys):
        main(["--database-url", db_url, "report", "--period", "weekly"])

        out = capsys.readouterr().out
        assert "Revenue Report (weekly)" in out
        assert "Week 4" in out
