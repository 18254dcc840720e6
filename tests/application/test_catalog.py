"""Integration tests for the catalog and stock-keeping use cases."""

import pytest

from storefront.application.add_product import AddProductHandler
from storefront.application.restock_product import RestockProductHandler
from storefront.application.show_inventory import ShowInventoryHandler
from storefront.application.update_product import PublishProductHandler, UpdateProductHandler
from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.product import ProductStatus
from storefront.domain.model.value_objects import Money
from tests.builders import make_product, make_world
from tests.fakes import FakeProductRepository


class TestAddProduct:

    def test_adds_with_opening_stock(self):
        repo = FakeProductRepository()
        product = AddProductHandler(repo).handle("Widget", "15.00", stock=12)
        assert product.id == "1"
        stored = repo.get_by_id("1")
        assert stored.status is ProductStatus.ACTIVE
        assert stored.total_stock == stored.available_stock == 12

    def test_without_stock_is_visible_but_not_saleable(self):
        repo = FakeProductRepository()
        product = AddProductHandler(repo).handle("Widget", "15.00")
        assert product.status is ProductStatus.OUT_OF_STOCK
        assert not product.is_saleable

    def test_draft_keeps_draft_status(self):
        repo = FakeProductRepository()
        product = AddProductHandler(repo).handle("Widget", "15.00", stock=3, draft=True)
        assert product.status is ProductStatus.DRAFT

    def test_ids_are_sequential(self):
        repo = FakeProductRepository()
        handler = AddProductHandler(repo)
        handler.handle("Widget", "15.00")
        assert handler.handle("Gadget", "25.00").id == "2"

    def test_duplicate_name_rejected(self):
        repo = FakeProductRepository()
        AddProductHandler(repo).handle("Widget", "15.00")
        with pytest.raises(ValidationError, match="already exists"):
            AddProductHandler(repo).handle("widget", "9.00")

    @pytest.mark.parametrize("price", ["0", "-1"])
    def test_price_must_be_positive(self, price):
        with pytest.raises(ValidationError):
            AddProductHandler(FakeProductRepository()).handle("Widget", price)

    def test_threshold_comes_from_settings(self):
        product = AddProductHandler(FakeProductRepository(), low_stock_threshold=3).handle(
            "Widget", "1.00", stock=4
        )
        assert product.low_stock_threshold == 3
        assert not product.is_low_stock


class TestUpdateProduct:

    def test_reprice(self):
        world = make_world()
        UpdateProductHandler(world.products).handle("1", "19.99")
        assert world.products.get_by_id("1").price == Money.of("19.99")

    def test_unknown_product(self):
        with pytest.raises(EntityNotFoundError):
            UpdateProductHandler(FakeProductRepository()).handle("42", "1.00")

    def test_publish_and_unpublish(self):
        world = make_world()
        handler = PublishProductHandler(world.products)
        assert handler.handle("1", publish=False).status is ProductStatus.INACTIVE
        assert handler.handle("1").status is ProductStatus.ACTIVE


class TestStock:

    def test_restock(self):
        world = make_world()
        product = RestockProductHandler(world.products).handle("2", 8)
        assert product.available_stock == 10
        assert world.stock("2") == (10, 0, 0)

    def test_restock_must_be_positive(self):
        world = make_world()
        with pytest.raises(ValidationError, match="must be positive"):
            RestockProductHandler(world.products).handle("2", 0)

    def test_inventory_view(self):
        world = make_world(
            make_product("1", "Widget", "15.00", 50),
            make_product("2", "Gadget", "25.00", 2),
        )
        world.place(("1", 3))

        lines = ShowInventoryHandler(world.products).handle()
        widget = next(line for line in lines if line.product_name == "Widget")
        assert (widget.total, widget.available, widget.reserved, widget.sold) == (50, 47, 3, 0)
        assert not widget.low_stock

        low = ShowInventoryHandler(world.products).handle(low_stock_only=True)
        assert [line.product_name for line in low] == ["Gadget"]
