"""Unit tests for tracing and logging helpers."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from pythonjsonlogger import jsonlogger

from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.observability import configure_logging, traced


@pytest.fixture
def mock_span() -> MagicMock:
    return MagicMock()


@pytest.fixture
def mock_tracer(mock_span: MagicMock) -> MagicMock:
    tracer = MagicMock()
    tracer.start_as_current_span.return_value.__enter__.return_value = mock_span
    return tracer


@pytest.mark.unit
class TestTraced:
    """Test suite for the traced decorator."""

    @pytest.mark.asyncio
    async def test_failed_result_marks_span(self, mock_tracer: MagicMock, mock_span: MagicMock) -> None:
        with patch("dormdash_service.observability.decorators.trace.get_tracer", return_value=mock_tracer):

            @traced("place_order")
            async def place_order() -> ServiceResult[None]:
                return ServiceResult.fail(ErrorKind.VALIDATION, "Please add items to your cart.")

        result = await place_order()

        assert not result.success
        mock_tracer.start_as_current_span.assert_called_once_with("place_order")
        mock_span.set_attribute.assert_any_call("success", False)
        mock_span.set_attribute.assert_any_call("error.kind", "validation")

    def test_sync_exception_recorded_and_raised(
        self, mock_tracer: MagicMock, mock_span: MagicMock
    ) -> None:
        with patch("dormdash_service.observability.decorators.trace.get_tracer", return_value=mock_tracer):

            @traced()
            def explode() -> None:
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            explode()

        mock_tracer.start_as_current_span.assert_called_once_with("explode")
        mock_span.set_attribute.assert_any_call("error.type", "RuntimeError")
        mock_span.record_exception.assert_called_once()


@pytest.mark.unit
def test_configure_logging_installs_json_formatter() -> None:
    root_logger = logging.getLogger()
    saved_handlers = root_logger.handlers[:]
    saved_level = root_logger.level

    try:
        with patch.dict("os.environ", {"LOG_LEVEL": "debug"}):
            configure_logging()

        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, jsonlogger.JsonFormatter)
    finally:
        root_logger.handlers = saved_handlers
        root_logger.setLevel(saved_level)
