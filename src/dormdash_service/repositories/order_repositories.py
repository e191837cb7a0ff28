"""DynamoDB repository classes for orders and reviews.

These repositories provide reads, writes and equality-filtered queries for the
orders and reviews tables. Expected failures are logged and reported as simple
return values (None/False) rather than raised.
"""

import logging
from datetime import datetime
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from dormdash_service.models.order_models import Order, OrderStatus, Review

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _query_all(table: Table, **kwargs: Any) -> list[dict[str, Any]]:
    """Run a query and follow LastEvaluatedKey until all pages are read."""
    items: list[dict[str, Any]] = []
    response = table.query(**kwargs)
    items.extend(response.get("Items", []))

    while "LastEvaluatedKey" in response:
        response = table.query(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
        items.extend(response.get("Items", []))

    return items


def _epoch_seconds(timestamp: datetime | None) -> float:
    return timestamp.timestamp() if timestamp is not None else 0.0


class OrderRepository:
    """Repository for order records.

    Orders use order_id as partition key. The vendor_id-index and
    student_id-index GSIs serve the vendor dashboard and the student app.
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

    def save_order(self, order: Order) -> bool:
        """Save a new order.

        Args:
            order: Order to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=order.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save order {order.order_id}: {e}")
            return False

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by ID.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"order_id": order_id}, ConsistentRead=True)

            if "Item" not in response:
                return None

            return Order.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get order {order_id}: {e}")
            return None

    def list_orders_for_vendor(
        self, vendor_id: str, status: OrderStatus | None = None
    ) -> list[Order] | None:
        """List orders received by a vendor, optionally with a given status.

        Args:
            vendor_id: Vendor identifier
            status: Optional exact status filter

        Returns:
            Orders for the vendor (empty list if none found), or None on failure
        """
        kwargs: dict[str, Any] = {
            "IndexName": "vendor_id-index",
            "KeyConditionExpression": "vendor_id = :vid",
            "ExpressionAttributeValues": {":vid": vendor_id},
        }

        if status is not None:
            kwargs["FilterExpression"] = "#status = :status"
            kwargs["ExpressionAttributeNames"] = {"#status": "status"}
            kwargs["ExpressionAttributeValues"][":status"] = status.value

        try:
            return [Order.from_dynamodb_item(item) for item in _query_all(self.table, **kwargs)]

        except ClientError as e:
            logger.error(f"Failed to list orders for vendor {vendor_id}: {e}")
            return None

    def list_orders_for_student(
        self, student_id: str, limit: int | None = None
    ) -> list[Order] | None:
        """List orders placed by a student.

        The student_id-index has no sort key, so every page is read and a
        limit keeps the newest orders by creation time.

        Args:
            student_id: Student identifier
            limit: Optional number of most recent orders to return

        Returns:
            Orders for the student (empty list if none found), or None on failure
        """
        kwargs: dict[str, Any] = {
            "IndexName": "student_id-index",
            "KeyConditionExpression": "student_id = :sid",
            "ExpressionAttributeValues": {":sid": student_id},
        }

        try:
            orders = [Order.from_dynamodb_item(item) for item in _query_all(self.table, **kwargs)]

        except ClientError as e:
            logger.error(f"Failed to list orders for student {student_id}: {e}")
            return None

        if limit is None:
            return orders

        orders.sort(key=lambda o: (-_epoch_seconds(o.created_at), o.order_id))
        return orders[:limit]

    def count_orders_for_student(self, student_id: str) -> int | None:
        """Count the orders a student has placed.

        Args:
            student_id: Student identifier

        Returns:
            Number of orders, or None on error
        """
        kwargs: dict[str, Any] = {
            "IndexName": "student_id-index",
            "KeyConditionExpression": "student_id = :sid",
            "ExpressionAttributeValues": {":sid": student_id},
            "Select": "COUNT",
        }

        try:
            response = self.table.query(**kwargs)
            count = int(response.get("Count", 0))

            while "LastEvaluatedKey" in response:
                response = self.table.query(
                    ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs
                )
                count += int(response.get("Count", 0))

            return count

        except ClientError as e:
            logger.error(f"Failed to count orders for student {student_id}: {e}")
            return None

    def update_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        updated_at: datetime,
    ) -> bool:
        """Move an order to a new status if it still has the expected status.

        Args:
            order_id: Order identifier
            expected: Status the caller validated the transition against
            new_status: Target status
            updated_at: Timestamp of the change

        Returns:
            bool: True if the update was applied, False otherwise
        """
        try:
            self.table.update_item(
                Key={"order_id": order_id},
                UpdateExpression="SET #status = :new_status, updated_at = :updated_at",
                ConditionExpression="#status = :expected",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":new_status": new_status.value,
                    ":expected": expected.value,
                    ":updated_at": updated_at.isoformat(),
                },
            )
            return True

        except ClientError as e:
            if e.response["Error"]["Code"] == CONDITIONAL_CHECK_FAILED:
                logger.warning(f"Order {order_id} is no longer {expected.value}, update skipped")
            else:
                logger.error(f"Failed to update status of order {order_id}: {e}")
            return False

    def rating_write(self, order_id: str, rating: int) -> dict[str, Any]:
        """Build the transaction item that records a rating on a completed order.

        The write only applies while the order is Completed and has no rating,
        so a rating can never be recorded twice.

        Args:
            order_id: Order identifier
            rating: Rating value

        Returns:
            dict: Update entry for transact_write_items
        """
        return {
            "Update": {
                "TableName": self.table_name,
                "Key": {"order_id": order_id},
                "UpdateExpression": "SET rating = :rating",
                "ConditionExpression": (
                    "attribute_exists(order_id) AND attribute_not_exists(rating) "
                    "AND #status = :completed"
                ),
                "ExpressionAttributeNames": {"#status": "status"},
                "ExpressionAttributeValues": {
                    ":rating": rating,
                    ":completed": OrderStatus.COMPLETED.value,
                },
            }
        }


class ReviewRepository:
    """Repository for review records.

    Reviews are append-only and use review_id as partition key.
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

    def review_put(self, review: Review) -> dict[str, Any]:
        """Build the transaction item that appends a review.

        Review ids are derived from the order, so a review can only be stored once.

        Returns:
            dict: Put entry for transact_write_items
        """
        return {
            "Put": {
                "TableName": self.table_name,
                "Item": review.to_dynamodb_item(),
                "ConditionExpression": "attribute_not_exists(review_id)",
            }
        }
