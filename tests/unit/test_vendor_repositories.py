"""Unit tests for vendor, menu item and student repository classes."""

from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from dormdash_service.models.account_models import Student
from dormdash_service.models.vendor_models import MenuItem, Vendor
from dormdash_service.repositories.vendor_repositories import (
    MenuItemRepository,
    StudentRepository,
    VendorRepository,
)


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "error"}}, operation)


def _cancelled(reason_codes: list[str]) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": "TransactionCanceledException", "Message": "cancelled"},
            "CancellationReasons": [{"Code": code} for code in reason_codes],
        },
        "TransactWriteItems",
    )


def _vendor_item(**overrides: Any) -> dict[str, Any]:
    item: dict[str, Any] = {
        "vendor_id": "ven_456",
        "restaurant_name": "Night Canteen",
        "rating": Decimal("4.0"),
        "total_reviews": Decimal("10"),
        "version": Decimal("7"),
    }
    item.update(overrides)
    return item


@pytest.mark.unit
class TestVendorRepository:
    """Test suite for VendorRepository."""

    @pytest.fixture
    def mock_dynamodb(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def table(self, mock_dynamodb: MagicMock) -> MagicMock:
        return mock_dynamodb.Table.return_value

    @pytest.fixture
    def repository(self, mock_dynamodb: MagicMock) -> VendorRepository:
        return VendorRepository(dynamodb_resource=mock_dynamodb, table_name="test-vendors")

    def test_get_vendor(self, repository: VendorRepository, table: MagicMock) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}

        vendor = repository.get_vendor("ven_456")

        assert vendor is not None
        assert vendor.restaurant_name == "Night Canteen"
        assert vendor.total_reviews == 10
        assert vendor.is_active is True

    def test_get_vendor_error(self, repository: VendorRepository, table: MagicMock) -> None:
        table.get_item.side_effect = _client_error("InternalServerError", "GetItem")

        assert repository.get_vendor("ven_456") is None

    def test_has_vendor(self, repository: VendorRepository, table: MagicMock) -> None:
        table.get_item.return_value = {"Item": {"vendor_id": "ven_456"}}

        assert repository.has_vendor("ven_456") is True
        table.get_item.assert_called_once_with(
            Key={"vendor_id": "ven_456"}, ProjectionExpression="vendor_id"
        )

    def test_has_vendor_missing_and_error(self, repository: VendorRepository, table: MagicMock) -> None:
        table.get_item.return_value = {}
        assert repository.has_vendor("ven_x") is False

        table.get_item.side_effect = _client_error("InternalServerError", "GetItem")
        assert repository.has_vendor("ven_x") is None

    def test_save_vendor(self, repository: VendorRepository, table: MagicMock, sample_vendor: Vendor) -> None:
        assert repository.save_vendor(sample_vendor) is True
        table.put_item.assert_called_once_with(Item=sample_vendor.to_dynamodb_item())

    def test_list_vendors_follows_pagination(self, repository: VendorRepository, table: MagicMock) -> None:
        table.scan.side_effect = [
            {"Items": [_vendor_item()], "LastEvaluatedKey": {"vendor_id": "ven_456"}},
            {"Items": [_vendor_item(vendor_id="ven_789", restaurant_name="Juice Bar")]},
        ]

        vendors = repository.list_vendors()

        assert [v.vendor_id for v in vendors] == ["ven_456", "ven_789"]
        assert table.scan.call_args_list[1].kwargs == {"ExclusiveStartKey": {"vendor_id": "ven_456"}}

    def test_update_fields(self, repository: VendorRepository, table: MagicMock) -> None:
        assert repository.update_fields("ven_456", {"is_active": False, "image_url": "u"}) is True

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0, #f1 = :v1"
        assert kwargs["ExpressionAttributeNames"] == {"#f0": "is_active", "#f1": "image_url"}
        assert kwargs["ExpressionAttributeValues"] == {":v0": False, ":v1": "u"}
        assert kwargs["ConditionExpression"] == "attribute_exists(vendor_id)"

    def test_update_fields_refuses_rating_aggregate(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        assert repository.update_fields("ven_456", {"rating": Decimal("5")}) is False
        table.update_item.assert_not_called()

    def test_update_fields_error(self, repository: VendorRepository, table: MagicMock) -> None:
        table.update_item.side_effect = _client_error("ConditionalCheckFailedException", "UpdateItem")

        assert repository.update_fields("ven_456", {"is_active": True}) is False

    def test_run_transaction_commits_on_expected_version(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}

        result = repository.run_transaction(
            "ven_456", lambda vendor: {"total_reviews": vendor.total_reviews + 1}
        )

        assert result.success
        assert result.attempts == 1
        assert result.updates == {"total_reviews": 11}
        table.get_item.assert_called_once_with(Key={"vendor_id": "ven_456"}, ConsistentRead=True)
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0, #version = :next_version"
        assert kwargs["ConditionExpression"] == (
            "attribute_exists(vendor_id) AND #version = :expected_version"
        )
        assert kwargs["ExpressionAttributeValues"] == {
            ":v0": 11,
            ":next_version": 8,
            ":expected_version": 7,
        }

    def test_run_transaction_on_unversioned_vendor(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        item = _vendor_item()
        del item["version"]
        table.get_item.return_value = {"Item": item}

        repository.run_transaction("ven_456", lambda vendor: {"total_reviews": 1})

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == (
            "attribute_exists(vendor_id) AND attribute_not_exists(#version)"
        )
        assert kwargs["ExpressionAttributeValues"][":next_version"] == 1

    def test_run_transaction_retries_on_conflict(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        table.get_item.side_effect = [
            {"Item": _vendor_item(total_reviews=Decimal("10"), version=Decimal("7"))},
            {"Item": _vendor_item(total_reviews=Decimal("11"), version=Decimal("8"))},
        ]
        table.update_item.side_effect = [
            _client_error("ConditionalCheckFailedException", "UpdateItem"),
            {},
        ]
        seen: list[int] = []

        def mutate(vendor: Vendor) -> dict[str, Any]:
            seen.append(vendor.total_reviews)
            return {"total_reviews": vendor.total_reviews + 1}

        result = repository.run_transaction("ven_456", mutate)

        assert result.success
        assert result.attempts == 2
        assert result.updates == {"total_reviews": 12}
        assert seen == [10, 11]

    def test_run_transaction_gives_up(self, repository: VendorRepository, table: MagicMock) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}
        table.update_item.side_effect = _client_error("ConditionalCheckFailedException", "UpdateItem")

        result = repository.run_transaction(
            "ven_456", lambda vendor: {"total_reviews": 1}, max_attempts=3
        )

        assert not result.success
        assert result.attempts == 3
        assert table.update_item.call_count == 3
        assert result.error_message == "Too many concurrent updates after 3 attempts"

    def test_run_transaction_vendor_missing(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        table.get_item.return_value = {}

        result = repository.run_transaction("ven_missing", lambda vendor: {"total_reviews": 1})

        assert not result.success
        assert result.not_found
        table.update_item.assert_not_called()

    def test_run_transaction_other_error_is_not_retried(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}
        table.update_item.side_effect = _client_error("ProvisionedThroughputExceededException", "UpdateItem")

        result = repository.run_transaction("ven_456", lambda vendor: {"total_reviews": 1})

        assert not result.success
        assert result.attempts == 1
        assert table.update_item.call_count == 1

    def test_run_transaction_commits_companions_atomically(
        self, repository: VendorRepository, table: MagicMock, mock_dynamodb: MagicMock
    ) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}
        companion = {"Update": {"TableName": "orders", "Key": {"order_id": "ord_1"}}}

        result = repository.run_transaction(
            "ven_456", lambda vendor: {"total_reviews": 11}, companion_items=[companion]
        )

        assert result.success
        table.update_item.assert_not_called()
        transact_items = mock_dynamodb.meta.client.transact_write_items.call_args.kwargs[
            "TransactItems"
        ]
        assert transact_items[0] == companion
        vendor_update = transact_items[1]["Update"]
        assert vendor_update["TableName"] == "test-vendors"
        assert vendor_update["Key"] == {"vendor_id": "ven_456"}
        assert vendor_update["ExpressionAttributeValues"][":expected_version"] == 7

    def test_run_transaction_retries_when_vendor_condition_cancels(
        self, repository: VendorRepository, table: MagicMock, mock_dynamodb: MagicMock
    ) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}
        mock_dynamodb.meta.client.transact_write_items.side_effect = [
            _cancelled(["None", "ConditionalCheckFailed"]),
            {},
        ]

        result = repository.run_transaction(
            "ven_456", lambda vendor: {"total_reviews": 11}, companion_items=[{"Put": {}}]
        )

        assert result.success
        assert result.attempts == 2

    def test_run_transaction_companion_rejection_is_not_retried(
        self, repository: VendorRepository, table: MagicMock, mock_dynamodb: MagicMock
    ) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}
        mock_dynamodb.meta.client.transact_write_items.side_effect = _cancelled(
            ["ConditionalCheckFailed", "None"]
        )

        result = repository.run_transaction(
            "ven_456", lambda vendor: {"total_reviews": 11}, companion_items=[{"Update": {}}]
        )

        assert not result.success
        assert result.rejected
        assert mock_dynamodb.meta.client.transact_write_items.call_count == 1

    def test_run_transaction_aborted_by_mutation(
        self, repository: VendorRepository, table: MagicMock
    ) -> None:
        table.get_item.return_value = {"Item": _vendor_item()}

        result = repository.run_transaction("ven_456", lambda vendor: None)

        assert not result.success
        table.update_item.assert_not_called()


@pytest.mark.unit
class TestMenuItemRepository:
    """Test suite for MenuItemRepository."""

    @pytest.fixture
    def mock_dynamodb(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def table(self, mock_dynamodb: MagicMock) -> MagicMock:
        return mock_dynamodb.Table.return_value

    @pytest.fixture
    def repository(self, mock_dynamodb: MagicMock) -> MenuItemRepository:
        return MenuItemRepository(dynamodb_resource=mock_dynamodb, table_name="test-menu-items")

    def test_list_menu_items(self, repository: MenuItemRepository, table: MagicMock) -> None:
        table.query.return_value = {
            "Items": [
                {"vendor_id": "ven_456", "item_id": "item_1", "name": "Paneer Roll", "price": Decimal("100")},
            ]
        }

        items = repository.list_menu_items("ven_456")

        assert items is not None
        assert items[0].name == "Paneer Roll"
        assert items[0].category == "Main Course"
        assert items[0].prep_time == 15

    def test_list_menu_items_error(self, repository: MenuItemRepository, table: MagicMock) -> None:
        table.query.side_effect = _client_error("InternalServerError", "Query")

        assert repository.list_menu_items("ven_456") is None

    def test_save_and_delete(
        self, repository: MenuItemRepository, table: MagicMock, sample_menu_items: list[MenuItem]
    ) -> None:
        assert repository.save_menu_item(sample_menu_items[0]) is True
        assert repository.delete_menu_item("ven_456", "item_1") is True

        table.delete_item.assert_called_once_with(Key={"vendor_id": "ven_456", "item_id": "item_1"})

    def test_get_menu_item_not_found(self, repository: MenuItemRepository, table: MagicMock) -> None:
        table.get_item.return_value = {}

        assert repository.get_menu_item("ven_456", "item_9") is None


@pytest.mark.unit
class TestStudentRepository:
    """Test suite for StudentRepository."""

    def test_get_student(self) -> None:
        mock_dynamodb = MagicMock()
        mock_dynamodb.Table.return_value.get_item.return_value = {
            "Item": {"student_id": "stu_123", "name": "Ravi", "email": "ravi@campus.edu", "college": "IIT"}
        }
        repository = StudentRepository(dynamodb_resource=mock_dynamodb, table_name="students")

        student = repository.get_student("stu_123")

        assert student is not None
        assert student.college == "IIT"
        assert student.role == "student"

    def test_has_student_distinguishes_missing_from_failure(self) -> None:
        mock_dynamodb = MagicMock()
        mock_table = mock_dynamodb.Table.return_value
        repository = StudentRepository(dynamodb_resource=mock_dynamodb, table_name="students")

        mock_table.get_item.return_value = {"Item": {"student_id": "stu_123"}}
        assert repository.has_student("stu_123") is True

        mock_table.get_item.return_value = {}
        assert repository.has_student("stu_123") is False

        mock_table.get_item.side_effect = _client_error(
            "ProvisionedThroughputExceededException", "GetItem"
        )
        assert repository.has_student("stu_123") is None

    def test_save_student_error(self) -> None:
        mock_dynamodb = MagicMock()
        mock_dynamodb.Table.return_value.put_item.side_effect = _client_error(
            "InternalServerError", "PutItem"
        )
        repository = StudentRepository(dynamodb_resource=mock_dynamodb, table_name="students")

        assert repository.save_student(Student(student_id="s", name="n", email="e")) is False
