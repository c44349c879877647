"""
Unit tests for retry logic module
"""

import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from dlmm_adapter.infra.retry import (
    execute_with_retry,
    classify_error,
    CorrelationContext,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    RECOVERABLE_KEYWORDS,
)
from dlmm_adapter.errors import AggregatorError, ErrorCode, InvalidBinId, SwapAmountError
from dlmm_adapter.types import SwapResult


class TestClassifyError(unittest.TestCase):
    """Tests for error classification"""

    def test_timeout_error_is_recoverable(self):
        """Timeout errors should be classified as recoverable"""
        error = Exception("Connection timeout after 30 seconds")
        is_recoverable, error_code = classify_error(error)

        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.AGGREGATOR_TIMEOUT)

    def test_network_error_is_recoverable(self):
        """Network errors should be classified as recoverable"""
        error = Exception("Network connection failed: ECONNRESET")
        is_recoverable, error_code = classify_error(error)

        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.AGGREGATOR_ERROR)

    def test_503_error_is_recoverable(self):
        """HTTP 503 errors should be recoverable"""
        error = Exception("Service temporarily unavailable: 503")
        is_recoverable, _ = classify_error(error)

        self.assertTrue(is_recoverable)

    def test_unknown_error_not_recoverable(self):
        """Unknown errors should not be classified as recoverable"""
        error = Exception("division by zero")
        is_recoverable, error_code = classify_error(error)

        self.assertFalse(is_recoverable)
        self.assertIsNone(error_code)

    def test_engine_errors_keep_their_classification(self):
        """DlmmError subclasses are classified by their own flags"""
        is_recoverable, error_code = classify_error(AggregatorError.timeout("http://router", 5.0))
        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.AGGREGATOR_TIMEOUT)

        # Message mentions a timeout, but bin math errors never retry
        error = InvalidBinId("timeout while resolving bin", bin_id=1)
        is_recoverable, error_code = classify_error(error)
        self.assertFalse(is_recoverable)
        self.assertEqual(error_code, ErrorCode.INVALID_BIN_ID)


class TestExecuteWithRetry(unittest.TestCase):
    """Tests for execute_with_retry function"""

    def test_success_on_first_attempt(self):
        """Operation that succeeds on first attempt"""
        mock_operation = AsyncMock(return_value=SwapResult(100, 120))

        result = asyncio.run(execute_with_retry(mock_operation, "test_operation", max_retries=5, retry_delay=0))

        self.assertEqual(result.swap_out_amount, 120)
        self.assertEqual(mock_operation.call_count, 1)

    @patch("dlmm_adapter.infra.retry.asyncio.sleep", new_callable=AsyncMock)
    def test_success_after_retries(self, mock_sleep):
        """Operation that succeeds after retries"""
        # Fail twice then succeed
        mock_operation = AsyncMock(side_effect=[
            AggregatorError.http_error(503, "unavailable"),
            AggregatorError.timeout("http://router", 5.0),
            SwapResult(100, 120),
        ])

        result = asyncio.run(execute_with_retry(mock_operation, "test_operation", max_retries=5, retry_delay=0.1))

        self.assertEqual(result.swap_in_amount, 100)
        self.assertEqual(mock_operation.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    @patch("dlmm_adapter.infra.retry.asyncio.sleep", new_callable=AsyncMock)
    def test_linear_backoff(self, mock_sleep):
        """Delays grow linearly with the attempt number"""
        mock_operation = AsyncMock(side_effect=Exception("connection reset"))

        with self.assertRaises(Exception):
            asyncio.run(execute_with_retry(mock_operation, "test_operation", max_retries=3, retry_delay=0.5))

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        self.assertEqual(delays, [0.5, 1.0])

    def test_non_recoverable_error_no_retry(self):
        """Non-recoverable error should not trigger retry"""
        mock_operation = AsyncMock(side_effect=SwapAmountError.below_minimum(0))

        with self.assertRaises(SwapAmountError):
            asyncio.run(execute_with_retry(mock_operation, "test_operation", max_retries=5, retry_delay=0))

        self.assertEqual(mock_operation.call_count, 1)

    @patch("dlmm_adapter.infra.retry.asyncio.sleep", new_callable=AsyncMock)
    def test_max_retries_exceeded(self, mock_sleep):
        """Should raise the last error after max retries"""
        mock_operation = AsyncMock(side_effect=AggregatorError.timeout("http://router", 5.0))

        with self.assertRaises(AggregatorError):
            asyncio.run(execute_with_retry(mock_operation, "test_operation", max_retries=3, retry_delay=0.1))

        self.assertEqual(mock_operation.call_count, 3)

    @patch("dlmm_adapter.infra.retry.global_config")
    def test_defaults_from_config(self, mock_config):
        """max_retries and retry_delay default to the retry config"""
        mock_config.retry.max_retries = 2
        mock_config.retry.retry_delay = 0

        mock_operation = AsyncMock(side_effect=Exception("request failed"))

        with self.assertRaises(Exception):
            asyncio.run(execute_with_retry(mock_operation, "test_operation"))

        self.assertEqual(mock_operation.call_count, 2)


class TestRetryKeywords(unittest.TestCase):
    """Tests for retry keyword lists"""

    def test_recoverable_keywords_present(self):
        """Verify essential recoverable keywords are present"""
        essential_keywords = ["timeout", "connection", "network", "rate limit"]
        for keyword in essential_keywords:
            self.assertIn(keyword, RECOVERABLE_KEYWORDS)


class TestCorrelationContext(unittest.TestCase):
    """Tests for correlation ID context management"""

    def test_generate_correlation_id(self):
        """Test correlation ID generation"""
        cid1 = generate_correlation_id()
        cid2 = generate_correlation_id()

        # Should be 12 hex characters
        self.assertEqual(len(cid1), 12)
        self.assertTrue(all(c in "0123456789abcdef" for c in cid1))

        # Should be unique
        self.assertNotEqual(cid1, cid2)

    def test_correlation_context_with_prefix(self):
        """Test correlation context with custom prefix"""
        self.assertIsNone(get_correlation_id())

        with CorrelationContext("zap_in") as cid:
            self.assertTrue(cid.startswith("zap_in_"))
            self.assertEqual(get_correlation_id(), cid)

        self.assertIsNone(get_correlation_id())

    def test_nested_correlation_context(self):
        """Test nested correlation contexts"""
        with CorrelationContext("outer") as outer_cid:
            with CorrelationContext("inner") as inner_cid:
                self.assertEqual(get_correlation_id(), inner_cid)

            # After inner context, should restore outer
            self.assertEqual(get_correlation_id(), outer_cid)

        self.assertIsNone(get_correlation_id())

    def test_set_correlation_id_manual(self):
        """Test manual correlation ID setting"""
        token = set_correlation_id("test_cid_12345")
        try:
            self.assertEqual(get_correlation_id(), "test_cid_12345")
        finally:
            from dlmm_adapter.infra.retry import _correlation_id
            _correlation_id.reset(token)

        self.assertIsNone(get_correlation_id())


if __name__ == "__main__":
    unittest.main()
