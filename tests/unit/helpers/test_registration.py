"""Unit tests for handler registration and health polling."""

from unittest.mock import MagicMock

import pytest
import requests

from cf_cli.helpers.error_handler import (
    ApiError,
    CollisionError,
    HealthCheckTimeoutError,
    UnhandledResponseError,
)
from cf_cli.helpers.registration import (
    create_target_group,
    is_retryable,
    register_and_wait,
    wait_for_healthy,
)
from cf_cli.models import InstallState
from conftest import api_response

HANDLER_ID = "cf-handler-common-fate-aws"
UNHEALTHY = api_response(200, {"id": HANDLER_ID, "healthy": False, "diagnostics": []})
HEALTHY = api_response(200, {"id": HANDLER_ID, "healthy": True})


def poll(api, fake_clock):
    return wait_for_healthy(api, HANDLER_ID, sleep=fake_clock.sleep, clock=fake_clock)


class TestWaitForHealthy:
    """Test the handler health poll."""

    def test_healthy_after_three_unhealthy_polls(self, fake_clock):
        """Test healthy after three unhealthy polls."""
        api = MagicMock()
        api.get_handler.side_effect = [UNHEALTHY, UNHEALTHY, UNHEALTHY, HEALTHY]

        handler = poll(api, fake_clock)

        assert handler["healthy"] is True
        assert api.get_handler.call_count == 4
        assert fake_clock.sleeps == [5, 5, 5]

    def test_never_healthy_times_out_at_deadline(self, fake_clock):
        """Test a never healthy handler times out at the deadline."""
        api = MagicMock()
        api.get_handler.return_value = UNHEALTHY

        with pytest.raises(HealthCheckTimeoutError, match="timed out waiting for Handler"):
            poll(api, fake_clock)

        assert fake_clock.now == 120
        assert api.get_handler.call_count == 25

    def test_server_errors_are_retried(self, fake_clock):
        """Test server errors are retried."""
        api = MagicMock()
        api.get_handler.side_effect = [api_response(503, {"error": "unavailable"}), HEALTHY]

        poll(api, fake_clock)

        assert api.get_handler.call_count == 2

    def test_network_errors_are_retried(self, fake_clock):
        """Test network errors are retried."""
        api = MagicMock()
        api.get_handler.side_effect = [requests.ConnectionError("reset"), HEALTHY]

        poll(api, fake_clock)

        assert fake_clock.sleeps == [5]

    def test_not_found_is_fatal(self, fake_clock):
        """Test a 404 stops polling."""
        api = MagicMock()
        api.get_handler.return_value = api_response(404, {"error": "handler not found"})

        with pytest.raises(ApiError, match="handler not found") as exc_info:
            poll(api, fake_clock)

        assert not isinstance(exc_info.value, HealthCheckTimeoutError)
        assert api.get_handler.call_count == 1
        assert fake_clock.sleeps == []

    def test_unexpected_status_is_fatal(self, fake_clock):
        """Test an unexpected status stops polling."""
        api = MagicMock()
        api.get_handler.return_value = api_response(418)

        with pytest.raises(UnhandledResponseError):
            poll(api, fake_clock)

        assert api.get_handler.call_count == 1

    @pytest.mark.parametrize(
        "error,expected",
        [
            (ApiError("boom", 500), True),
            (ApiError("bad", 400), False),
            (ApiError("gone", 404), False),
            (requests.Timeout(), True),
            (ValueError(), False),
        ],
    )
    def test_is_retryable(self, error, expected):
        """Test which errors are retryable."""
        assert is_retryable(error) is expected


class TestCreateTargetGroup:
    """Test target group creation."""

    def test_created(self):
        """Test target group creation."""
        api = MagicMock()
        api.create_target_group.return_value = api_response(201, {})
        assert create_target_group(api, "aws", "common-fate/aws@v0.4.0/Account") is True
        api.create_target_group.assert_called_once_with("aws", "common-fate/aws@v0.4.0/Account")

    def test_conflict_is_a_collision(self):
        """Test a 409 is a collision."""
        api = MagicMock()
        api.create_target_group.return_value = api_response(409, {"error": "exists"})
        with pytest.raises(CollisionError, match="Duplicate Target Group ID"):
            create_target_group(api, "aws", "schema")

    def test_conflict_allowed(self):
        """Test a 409 is accepted with ok-if-exists."""
        api = MagicMock()
        api.create_target_group.return_value = api_response(409, {"error": "exists"})
        assert create_target_group(api, "aws", "schema", allow_existing=True) is False

    def test_bad_request_message_is_verbatim(self):
        """Test a 400 message is surfaced verbatim."""
        api = MagicMock()
        api.create_target_group.return_value = api_response(400, {"error": "invalid schema"})
        with pytest.raises(ApiError, match="^invalid schema$"):
            create_target_group(api, "aws", "schema")


class TestRegisterAndWait:
    """Test the registration sequence."""

    def make_api(self):
        api = MagicMock()
        api.create_target_group.return_value = api_response(201, {})
        api.register_handler.return_value = api_response(201, {})
        api.create_target_group_link.return_value = api_response(200, {})
        api.get_handler.return_value = HEALTHY
        return api

    def test_steps_run_in_order(self, fake_clock):
        """Test registration steps run in order."""
        api = self.make_api()
        states = []

        register_and_wait(
            api,
            HANDLER_ID,
            "123456789012",
            "us-east-1",
            "common-fate-aws",
            "common-fate/aws@v0.4.0/Account",
            "Account",
            on_state=states.append,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        called = [name for name, _, _ in api.method_calls]
        assert called == [
            "create_target_group",
            "register_handler",
            "create_target_group_link",
            "get_handler",
        ]
        api.register_handler.assert_called_once_with(HANDLER_ID, "123456789012", "us-east-1")
        api.create_target_group_link.assert_called_once_with(
            "common-fate-aws",
            {"deploymentId": HANDLER_ID, "kind": "Account", "priority": 100},
        )
        assert states == [InstallState.REGISTERED, InstallState.LINKED, InstallState.HEALTHY]

    def test_existing_target_group_stops_registration(self, fake_clock):
        """Test an existing target group stops registration."""
        api = self.make_api()
        api.create_target_group.return_value = api_response(409, {"error": "exists"})

        with pytest.raises(CollisionError):
            register_and_wait(
                api, HANDLER_ID, "1", "r", "tg", "schema", "Account",
                sleep=fake_clock.sleep, clock=fake_clock,
            )

        api.register_handler.assert_not_called()
        api.create_target_group_link.assert_not_called()

    def test_registration_conflict_stops_before_link(self, fake_clock):
        """Test a registration conflict stops before linking."""
        api = self.make_api()
        api.register_handler.return_value = api_response(409, {"error": "handler already exists"})

        with pytest.raises(ApiError, match="handler already exists"):
            register_and_wait(
                api, HANDLER_ID, "1", "r", "tg", "schema", "Account",
                sleep=fake_clock.sleep, clock=fake_clock,
            )

        api.create_target_group_link.assert_not_called()

    def test_timeout_reports_timed_out_state(self, fake_clock):
        """Test a timeout is reported as the timed out state."""
        api = self.make_api()
        api.get_handler.return_value = UNHEALTHY
        states = []

        with pytest.raises(HealthCheckTimeoutError):
            register_and_wait(
                api, HANDLER_ID, "1", "r", "tg", "schema", "Account",
                on_state=states.append, sleep=fake_clock.sleep, clock=fake_clock,
            )

        assert states[-1] is InstallState.TIMED_OUT
