"""DynamoDB repository classes for vendors, menu items and students.

Expected failures are logged and reported as None/False/empty list. The one
exception to plain last-writer-wins is VendorRepository.run_transaction, which
wraps a read-modify-write in an optimistic-concurrency retry loop.
"""

import logging
from collections.abc import Callable
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from dormdash_service.models.account_models import Student
from dormdash_service.models.result_models import TransactionResult
from dormdash_service.models.vendor_models import MenuItem, Vendor
from dormdash_service.observability.metrics import record_transaction_conflict

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
TRANSACTION_CANCELED = "TransactionCanceledException"
CONDITIONAL_CHECK_REASON = "ConditionalCheckFailed"
RETRYABLE_CANCELLATION_REASONS = frozenset({CONDITIONAL_CHECK_REASON, "TransactionConflict"})

# Attributes a caller may change through update_fields
UPDATABLE_VENDOR_FIELDS = frozenset(
    {
        "restaurant_name",
        "description",
        "image_url",
        "is_active",
        "location",
        "category",
        "opening_time",
        "closing_time",
        "owner_name",
        "phone_number",
    }
)

VendorMutation = Callable[[Vendor], dict[str, Any] | None]


class VendorRepository:
    """Repository for vendor records.

    Manages vendor profiles in DynamoDB with vendor_id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_vendor(self, vendor_id: str) -> Vendor | None:
        """Retrieve a vendor by ID.

        Args:
            vendor_id: Vendor identifier

        Returns:
            Vendor if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"vendor_id": vendor_id})

            if "Item" not in response:
                return None

            return Vendor.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get vendor {vendor_id}: {e}")
            return None

    def has_vendor(self, vendor_id: str) -> bool | None:
        """Check whether a vendor profile exists.

        Returns:
            True or False, or None when the lookup itself failed
        """
        try:
            response = self.table.get_item(
                Key={"vendor_id": vendor_id}, ProjectionExpression="vendor_id"
            )
            return "Item" in response

        except ClientError as e:
            logger.error(f"Failed to look up vendor {vendor_id}: {e}")
            return None

    def save_vendor(self, vendor: Vendor) -> bool:
        """Create or replace a vendor profile.

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=vendor.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save vendor {vendor.vendor_id}: {e}")
            return False

    def list_vendors(self) -> list[Vendor]:
        """List every vendor.

        Returns:
            list: All vendors (empty list if none found or on error)
        """
        try:
            response = self.table.scan()
            items = list(response.get("Items", []))

            while "LastEvaluatedKey" in response:
                response = self.table.scan(ExclusiveStartKey=response["LastEvaluatedKey"])
                items.extend(response.get("Items", []))

            return [Vendor.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list vendors: {e}")
            return []

    def update_fields(self, vendor_id: str, fields: dict[str, Any]) -> bool:
        """Overwrite profile fields of an existing vendor.

        Rating aggregates are not accepted here; they only change through
        run_transaction.

        Args:
            vendor_id: Vendor identifier
            fields: Attribute names and new values

        Returns:
            bool: True if update succeeded, False otherwise
        """
        unknown = set(fields) - UPDATABLE_VENDOR_FIELDS
        if unknown:
            logger.error(f"Refusing to update vendor fields {sorted(unknown)}")
            return False

        if not fields:
            return True

        names = {f"#f{i}": name for i, name in enumerate(fields)}
        values = {f":v{i}": value for i, value in enumerate(fields.values())}
        assignments = ", ".join(f"#f{i} = :v{i}" for i in range(len(fields)))

        try:
            self.table.update_item(
                Key={"vendor_id": vendor_id},
                UpdateExpression=f"SET {assignments}",
                ConditionExpression="attribute_exists(vendor_id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to update vendor {vendor_id}: {e}")
            return False

    def run_transaction(
        self,
        vendor_id: str,
        mutate: VendorMutation,
        max_attempts: int = 5,
        companion_items: list[dict[str, Any]] | None = None,
    ) -> TransactionResult:
        """Apply a read-modify-write to a vendor with optimistic concurrency.

        Each attempt reads the vendor with a strongly consistent read, asks
        mutate for the fields to write, and commits them conditionally on the
        version read. A concurrent writer makes the condition fail, in which
        case the vendor is read again and mutate runs on the fresh state.

        Companion items (transact_write_items entries for other tables) are
        committed in the same transaction as the vendor write, so either all
        of them apply or none do. If a companion's own condition fails the
        transaction is not retried.

        Args:
            vendor_id: Vendor identifier
            mutate: Receives the current vendor, returns fields to set (or None to abort)
            max_attempts: Attempts before giving up
            companion_items: Writes to commit atomically with the vendor update

        Returns:
            TransactionResult describing the committed write or the failure
        """
        for attempt in range(1, max_attempts + 1):
            try:
                response = self.table.get_item(Key={"vendor_id": vendor_id}, ConsistentRead=True)
            except ClientError as e:
                logger.error(f"Failed to read vendor {vendor_id} in transaction: {e}")
                return TransactionResult(success=False, attempts=attempt, error_message=str(e))

            if "Item" not in response:
                logger.warning(f"Vendor {vendor_id} not found, transaction aborted")
                return TransactionResult(
                    success=False,
                    attempts=attempt,
                    not_found=True,
                    error_message=f"Vendor {vendor_id} not found",
                )

            item = response["Item"]
            vendor = Vendor.from_dynamodb_item(item)
            updates = mutate(vendor)
            if updates is None:
                return TransactionResult(
                    success=False, attempts=attempt, error_message="Transaction aborted"
                )

            names = {f"#f{i}": name for i, name in enumerate(updates)}
            values = {f":v{i}": value for i, value in enumerate(updates.values())}
            assignments = [f"#f{i} = :v{i}" for i in range(len(updates))]
            names["#version"] = "version"
            values[":next_version"] = vendor.version + 1
            assignments.append("#version = :next_version")

            if "version" in item:
                condition = "attribute_exists(vendor_id) AND #version = :expected_version"
                values[":expected_version"] = vendor.version
            else:
                condition = "attribute_exists(vendor_id) AND attribute_not_exists(#version)"

            vendor_update: dict[str, Any] = {
                "Key": {"vendor_id": vendor_id},
                "UpdateExpression": "SET " + ", ".join(assignments),
                "ConditionExpression": condition,
                "ExpressionAttributeNames": names,
                "ExpressionAttributeValues": values,
            }

            try:
                if companion_items:
                    self.dynamodb.meta.client.transact_write_items(
                        TransactItems=[
                            *companion_items,
                            {"Update": {"TableName": self.table_name, **vendor_update}},
                        ]
                    )
                else:
                    self.table.update_item(**vendor_update)
                return TransactionResult(success=True, attempts=attempt, updates=updates)

            except ClientError as e:
                code = e.response["Error"]["Code"]

                if code == TRANSACTION_CANCELED:
                    reasons = [r.get("Code") for r in e.response.get("CancellationReasons", [])]
                    companion_reasons = reasons[: len(companion_items or [])]
                    if CONDITIONAL_CHECK_REASON in companion_reasons:
                        logger.warning(
                            f"Companion write rejected in transaction on vendor {vendor_id}"
                        )
                        return TransactionResult(
                            success=False,
                            attempts=attempt,
                            rejected=True,
                            error_message="Companion write condition failed",
                        )
                    if not set(reasons) & RETRYABLE_CANCELLATION_REASONS:
                        logger.error(f"Transaction on vendor {vendor_id} cancelled: {reasons}")
                        return TransactionResult(
                            success=False, attempts=attempt, error_message=str(e)
                        )

                elif code != CONDITIONAL_CHECK_FAILED:
                    logger.error(f"Failed to write vendor {vendor_id} in transaction: {e}")
                    return TransactionResult(
                        success=False, attempts=attempt, error_message=str(e)
                    )

                logger.info(
                    f"Concurrent update on vendor {vendor_id}, retrying "
                    f"(attempt {attempt}/{max_attempts})"
                )
                record_transaction_conflict("vendors")

        logger.error(f"Transaction on vendor {vendor_id} gave up after {max_attempts} attempts")
        return TransactionResult(
            success=False,
            attempts=max_attempts,
            error_message=f"Too many concurrent updates after {max_attempts} attempts",
        )


class MenuItemRepository:
    """Repository for menu items.

    Manages menu items in DynamoDB with composite key (vendor_id, item_id).
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def list_menu_items(self, vendor_id: str) -> list[MenuItem] | None:
        """List the menu of a vendor.

        Args:
            vendor_id: Vendor identifier

        Returns:
            List of MenuItem objects, empty list if the menu is empty, or None on failure
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": "vendor_id = :vid",
            "ExpressionAttributeValues": {":vid": vendor_id},
        }

        try:
            response = self.table.query(**kwargs)
            items = list(response.get("Items", []))

            while "LastEvaluatedKey" in response:
                response = self.table.query(
                    ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs
                )
                items.extend(response.get("Items", []))

            return [MenuItem.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list menu items for vendor {vendor_id}: {e}")
            return None

    def get_menu_item(self, vendor_id: str, item_id: str) -> MenuItem | None:
        try:
            response = self.table.get_item(Key={"vendor_id": vendor_id, "item_id": item_id})

            if "Item" not in response:
                return None

            return MenuItem.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu item {item_id}: {e}")
            return None

    def save_menu_item(self, item: MenuItem) -> bool:
        """Create or replace a menu item.

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=item.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save menu item {item.item_id}: {e}")
            return False

    def delete_menu_item(self, vendor_id: str, item_id: str) -> bool:
        """Delete a menu item.

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"vendor_id": vendor_id, "item_id": item_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete menu item {item_id}: {e}")
            return False


class StudentRepository:
    """Repository for student profiles keyed by student_id."""

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_student(self, student_id: str) -> Student | None:
        """Retrieve a student profile.

        Returns:
            Student if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"student_id": student_id})

            if "Item" not in response:
                return None

            return Student.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get student {student_id}: {e}")
            return None

    def has_student(self, student_id: str) -> bool | None:
        """Check whether a student profile exists.

        Returns:
            True or False, or None when the lookup itself failed
        """
        try:
            response = self.table.get_item(
                Key={"student_id": student_id}, ProjectionExpression="student_id"
            )
            return "Item" in response

        except ClientError as e:
            logger.error(f"Failed to look up student {student_id}: {e}")
            return None

    def save_student(self, student: Student) -> bool:
        """Create or replace a student profile.

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=student.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save student {student.student_id}: {e}")
            return False
