"""Ops surface: /health endpoint and `flask ledger` commands."""

import json

from shopsavvy.extensions import db
from shopsavvy.models import LedgerCollection


class TestHealth:
    def test_health_reports_counts(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["ledger"]["details"] == {
            "shops": 3, "products": 5, "inventory": 15, "sales": 15,
        }

    def test_health_unhealthy_when_ledger_fails(self, client, app_ledger, monkeypatch):
        def broken():
            raise RuntimeError("boom")

        monkeypatch.setattr(app_ledger, "ensure_loaded", broken)

        response = client.get("/health")

        assert response.status_code == 503
        body = response.get_json()
        assert body["status"] == "unhealthy"
        assert body["checks"]["ledger"]["error"] == "Ledger error"


class TestLedgerCommands:
    def test_init_seeds(self, runner):
        result = runner.invoke(args=["ledger", "init"])

        assert result.exit_code == 0
        assert "PASS Seeded demo dataset" in result.output
        assert "shops: 3" in result.output

    def test_init_twice_loads_stored(self, runner, app_ledger):
        runner.invoke(args=["ledger", "init"])

        result = runner.invoke(args=["ledger", "init"])

        assert "PASS Loaded stored ledger" in result.output

    def test_list_commands(self, runner):
        shops = runner.invoke(args=["ledger", "shops"])
        products = runner.invoke(args=["ledger", "products"])
        sales = runner.invoke(args=["ledger", "sales", "--shop-id", "shop2"])

        assert "Downtown Grocery" in shops.output
        assert "Ground Coffee" in products.output
        assert "shop2" in sales.output
        assert "shop1 " not in sales.output

    def test_set_stock(self, runner, app_ledger):
        result = runner.invoke(args=["ledger", "set-stock", "shop1", "prod1", "40"])

        assert "PASS shop1/prod1 quantity set to 40" in result.output
        assert app_ledger.inventory.get("shop1", "prod1").quantity == 40

    def test_set_stock_unknown_store(self, runner, app_ledger):
        result = runner.invoke(args=["ledger", "set-stock", "ghost", "prod1", "4"])

        assert "FAIL Store ghost not found" in result.output
        assert app_ledger.inventory.get("ghost", "prod1") is None

    def test_expire_products(self, runner):
        result = runner.invoke(args=["ledger", "expire-products"])

        assert "PASS Deactivated 0 expired product(s)" in result.output

    def test_export_and_import(self, runner, app_ledger, tmp_path):
        path = tmp_path / "ledger.json"

        exported = runner.invoke(args=["ledger", "export", str(path)])
        doc = json.loads(path.read_text())
        doc["shops"] = doc["shops"][:1]
        doc["inventory"] = [e for e in doc["inventory"] if e["shopId"] == "shop1"]
        doc["sales"] = [s for s in doc["sales"] if s["shopId"] == "shop1"]
        path.write_text(json.dumps(doc))
        imported = runner.invoke(args=["ledger", "import", str(path)])

        assert "PASS Exported snapshot" in exported.output
        assert doc["schemaVersion"] == 2
        assert "PASS Imported snapshot: shops: 1" in imported.output
        assert [s.id for s in app_ledger.shops.list()] == ["shop1"]

    def test_import_rejects_invalid_json(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{nope")

        result = runner.invoke(args=["ledger", "import", str(path)])

        assert "is not valid JSON" in result.output

    def test_import_rejects_malformed_legacy_rows(self, runner, app_ledger, tmp_path):
        app_ledger.ensure_loaded()
        path = tmp_path / "legacy.json"
        path.write_text(json.dumps({"shops": ["not-a-dict"]}))

        result = runner.invoke(args=["ledger", "import", str(path)])

        assert result.exception is None
        assert "FAIL Snapshot rejected: Stored shops data is corrupt" in result.output
        assert app_ledger.counts()["shops"] == 3

    def test_reset(self, runner, app_ledger):
        app_ledger.ensure_loaded()
        app_ledger.shops.create({"name": "Extra", "storeNumber": "X1", "address": "x"})

        result = runner.invoke(args=["ledger", "reset", "--yes"])

        assert "PASS Ledger reset complete." in result.output
        assert app_ledger.counts()["shops"] == 3
        assert db.session.query(LedgerCollection).count() == 4
