"""
Tests for the catalog endpoints
"""
from unittest.mock import patch

import pytest

from loyalty_api.repositories.product_repository import ProductRepository


@pytest.fixture
def product(sample_product_row):
    return ProductRepository(low_stock_threshold=5).map_row_to_product(sample_product_row)


class TestProductSearch:

    @patch('loyalty_api.api.products.ProductRepository')
    def test_search_page(self, mock_repo_cls, client, product):
        # Arrange
        mock_repo = mock_repo_cls.return_value
        mock_repo.search.return_value = ([product], 25)

        # Act
        response = client.get("/api/products", params={"page": 2, "limit": 12, "sortField": "bogus"})

        # Assert
        data = response.json()
        assert response.status_code == 200
        assert data["total"] == 25
        assert data["hasMore"] is True
        assert data["products"][0]["stockStatus"] == "low_stock"
        mock_repo_cls.assert_called_once_with(5)
        assert mock_repo.search.call_args.kwargs["sort_field"] == "name"
        assert mock_repo.search.call_args.kwargs["page"] == 2

    @patch('loyalty_api.api.products.ProductRepository')
    def test_last_page_has_no_more(self, mock_repo_cls, client):
        mock_repo_cls.return_value.search.return_value = ([], 24)

        data = client.get("/api/products", params={"page": 2, "limit": 12}).json()

        assert data["hasMore"] is False

    def test_invalid_stock_status(self, client):
        response = client.get("/api/products", params={"stockStatus": "plenty"})
        assert response.status_code == 400
        assert "Invalid stockStatus" in response.json()["error"]

    @patch('loyalty_api.api.products.ProductRepository')
    def test_repository_failure(self, mock_repo_cls, client):
        mock_repo_cls.return_value.search.side_effect = Exception("connection refused")

        response = client.get("/api/products")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch products"}


class TestProductDetail:

    @patch('loyalty_api.api.products.ProductRepository')
    def test_detail_with_related(self, mock_repo_cls, client, product):
        mock_repo = mock_repo_cls.return_value
        mock_repo.find_by_id.return_value = product
        mock_repo.find_related.return_value = []

        data = client.get("/api/products/101").json()

        assert data["product"]["id"] == 101
        assert data["relatedProducts"] == []
        mock_repo.find_related.assert_called_once_with(101, "Footwear", limit=4)

    @patch('loyalty_api.api.products.ProductRepository')
    def test_detail_not_found(self, mock_repo_cls, client):
        mock_repo_cls.return_value.find_by_id.return_value = None

        response = client.get("/api/products/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Product not found"}


class TestCompare:

    @pytest.mark.parametrize("ids", ["101", "1,2,3,4,5", "101,101"])
    def test_wrong_number_of_products(self, client, ids):
        response = client.get("/api/products/compare", params={"ids": ids})
        assert response.status_code == 400

    def test_non_integer_ids(self, client):
        response = client.get("/api/products/compare", params={"ids": "101,abc"})
        assert response.status_code == 400

    @patch('loyalty_api.api.products.ProductRepository')
    def test_missing_products_listed(self, mock_repo_cls, client, product):
        mock_repo_cls.return_value.find_by_ids.return_value = [product]

        response = client.get("/api/products/compare", params={"ids": "101,7,8"})

        assert response.status_code == 404
        assert response.json() == {"error": "Products not found: 7, 8"}

    @patch('loyalty_api.api.products.ProductRepository')
    def test_compare_found(self, mock_repo_cls, client, product):
        other = product.model_copy(update={"id": 102})
        mock_repo_cls.return_value.find_by_ids.return_value = [product, other]

        data = client.get("/api/products/compare", params={"ids": "101,102"}).json()

        assert [p["id"] for p in data["products"]] == [101, 102]


class TestRecentlyViewed:

    @patch('loyalty_api.api.products.ProductRepository')
    def test_record_view(self, mock_repo_cls, client):
        mock_repo_cls.return_value.record_view.return_value = True

        response = client.post("/api/products/recently-viewed", json={"productId": 101})

        assert response.json() == {"success": True}
        mock_repo_cls.return_value.record_view.assert_called_once_with(7, 101)

    def test_record_view_requires_product_id(self, client):
        response = client.post("/api/products/recently-viewed", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Product ID is required"}

    @patch('loyalty_api.api.products.ProductRepository')
    def test_record_view_unknown_product(self, mock_repo_cls, client):
        mock_repo_cls.return_value.record_view.return_value = False

        response = client.post("/api/products/recently-viewed", json={"productId": 999})

        assert response.status_code == 404
