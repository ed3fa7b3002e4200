"""Active shop pointer."""

from conftest import shop_draft


class TestActiveShop:
    def test_unset_by_default(self, ledger):
        assert ledger.active_shop.get() is None

    def test_set_and_persist(self, ledger, adapter):
        result = ledger.active_shop.set("shop-x")

        assert result.success
        assert ledger.active_shop.get() == "shop-x"
        assert adapter.load("activeShop") == "shop-x"

    def test_set_does_not_check_existence(self, ledger):
        assert ledger.active_shop.set("never-created").success

    def test_empty_id_rejected(self, ledger):
        result = ledger.active_shop.set("")

        assert not result.success
        assert result.error == "shopId is required"

    def test_clear_removes_stored_value(self, ledger, adapter):
        ledger.active_shop.set("shop-x")

        assert ledger.active_shop.clear().success
        assert ledger.active_shop.get() is None
        assert adapter.load("activeShop") is None

    def test_survives_shop_deletion(self, ledger):
        shop = ledger.shops.create(shop_draft()).data
        ledger.active_shop.set(shop.id)

        ledger.shops.delete(shop.id)

        assert ledger.active_shop.get() == shop.id

    def test_failed_flush_keeps_previous_value(self, ledger, adapter):
        ledger.active_shop.set("shop-a")
        adapter.fail_writes = True

        assert not ledger.active_shop.set("shop-b").success
        assert ledger.active_shop.get() == "shop-a"
