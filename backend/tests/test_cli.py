"""
CLI command tests (flask catalog / pins / supplies).
"""

from relief.models import Item, Pin

from conftest import make_pin


class TestCatalogCommands:

    def test_seed_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["catalog", "seed"])
        second = runner.invoke(args=["catalog", "seed"])

        assert "PASS Created 8 catalog item(s)" in first.output
        assert "PASS Created 0 catalog item(s)" in second.output
        assert db_session.query(Item).count() == 8

    def test_list_empty_and_populated(self, app, db_session):
        runner = app.test_cli_runner()

        assert "No catalog items found." in runner.invoke(args=["catalog", "list"]).output

        runner.invoke(args=["catalog", "seed"])
        output = runner.invoke(args=["catalog", "list"]).output
        assert "Drinking Water" in output
        assert "Hygiene Kit" in output


class TestPinCommands:

    def test_reconcile_removes_fulfilled_pin(self, app, db_session, water):
        pin = make_pin(db_session, lines=[(water, 2, 0)])
        pin_id = pin.id

        result = app.test_cli_runner().invoke(args=["pins", "reconcile", "--pin-id", str(pin_id)])

        assert f"PASS Pin {pin_id} was complete and has been removed" in result.output
        assert db_session.query(Pin).filter_by(id=pin_id).count() == 0

    def test_reconcile_leaves_open_pin(self, app, db_session, water):
        pin = make_pin(db_session, lines=[(water, 2)])

        result = app.test_cli_runner().invoke(args=["pins", "reconcile", "--pin-id", str(pin.id)])

        assert f"PASS Pin {pin.id} left unchanged" in result.output

    def test_sweep(self, app, db_session, water):
        done = make_pin(db_session, lines=[(water, 2, 0)])
        make_pin(db_session, lines=[(water, 2, 1)])
        done_id = done.id

        result = app.test_cli_runner().invoke(args=["pins", "sweep"])

        assert "PASS Sweep removed 1 pin(s)" in result.output
        assert f"pin {done_id}" in result.output


class TestSupplyCommands:

    def test_by_region(self, app, db_session, geocoder, water):
        geocoder.regions[(16.8, 96.15)] = "Yangon, Yangon Region"
        make_pin(db_session, lines=[(water, 9, 7)])

        output = app.test_cli_runner().invoke(args=["supplies", "by-region"]).output

        assert "Yangon, Yangon Region" in output
        assert "Drinking Water" in output
        assert "7" in output

    def test_by_region_empty(self, app, db_session):
        output = app.test_cli_runner().invoke(args=["supplies", "by-region"]).output

        assert "No outstanding supplies." in output
