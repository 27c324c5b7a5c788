"""Unit tests for bootstrap stack detection and deployment."""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cf_cli.helpers.bootstrapper import (
    BOOTSTRAP_STACK_NAME,
    Bootstrapper,
    load_bootstrap_template,
)
from cf_cli.helpers.error_handler import NotDeployedError, StackIntegrityError
from conftest import client_error

STACK = {
    "StackName": BOOTSTRAP_STACK_NAME,
    "StackStatus": "CREATE_COMPLETE",
    "Outputs": [{"OutputKey": "AssetsBucket", "OutputValue": "cf-assets-bucket"}],
}
NOT_FOUND = client_error(
    "ValidationError", f"Stack with id {BOOTSTRAP_STACK_NAME} does not exist", "DescribeStacks"
)


def make_bootstrapper(cfn, fake_clock, deployer=None):
    return Bootstrapper(
        cfn, deployer or MagicMock(), sleep=fake_clock.sleep, clock=fake_clock
    )


class TestDetect:
    """Test bootstrap stack detection."""

    def test_detect_returns_bucket(self, fake_clock):
        """Test detect returns the assets bucket."""
        cfn = MagicMock()
        cfn.describe_stacks.return_value = {"Stacks": [STACK]}

        output = make_bootstrapper(cfn, fake_clock).detect()

        assert output.assets_bucket == "cf-assets-bucket"
        cfn.describe_stacks.assert_called_once_with(StackName=BOOTSTRAP_STACK_NAME)

    def test_detect_is_idempotent(self, fake_clock):
        """Test repeated detect calls give the same result."""
        cfn = MagicMock()
        cfn.describe_stacks.return_value = {"Stacks": [STACK]}
        bootstrapper = make_bootstrapper(cfn, fake_clock)

        assert bootstrapper.detect() == bootstrapper.detect()

    def test_missing_stack_is_not_deployed_without_retry(self, fake_clock):
        """Test a missing stack raises NotDeployedError without retrying."""
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = NOT_FOUND

        with pytest.raises(NotDeployedError):
            make_bootstrapper(cfn, fake_clock).detect()

        assert cfn.describe_stacks.call_count == 1
        assert fake_clock.sleeps == []

    def test_confirmatory_detect_retries_for_twenty_seconds(self, fake_clock):
        """Test confirmatory detect retries for twenty seconds."""
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = NOT_FOUND

        with pytest.raises(NotDeployedError):
            make_bootstrapper(cfn, fake_clock).detect(retry_on_not_deployed=True)

        assert fake_clock.now == 20
        assert fake_clock.sleeps == [1, 2, 3, 5, 8, 1]

    def test_other_errors_propagate(self, fake_clock):
        """Test other errors propagate."""
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = client_error("AccessDenied", "nope")

        with pytest.raises(ClientError):
            make_bootstrapper(cfn, fake_clock).detect(retry_on_not_deployed=True)

        assert cfn.describe_stacks.call_count == 1

    @pytest.mark.parametrize("stacks", [[], [STACK, STACK]])
    def test_stack_count_must_be_one(self, fake_clock, stacks):
        """Test more than one stack is an integrity error."""
        cfn = MagicMock()
        cfn.describe_stacks.return_value = {"Stacks": stacks}

        with pytest.raises(StackIntegrityError, match=f"expected 1 stack but got {len(stacks)}"):
            make_bootstrapper(cfn, fake_clock).detect()


class TestGetOrDeploy:
    """Test detect-or-create of the bootstrap stack."""

    def test_existing_stack_is_reused(self, fake_clock):
        """Test an existing bootstrap stack is reused."""
        cfn = MagicMock()
        cfn.describe_stacks.return_value = {"Stacks": [STACK]}
        deployer = MagicMock()

        output = make_bootstrapper(cfn, fake_clock, deployer).get_or_deploy()

        assert output.assets_bucket == "cf-assets-bucket"
        deployer.deploy.assert_not_called()

    def test_missing_stack_is_deployed_then_detected(self, fake_clock):
        """Test a missing bootstrap stack is deployed then detected."""
        cfn = MagicMock()
        cfn.describe_stacks.side_effect = [NOT_FOUND, NOT_FOUND, {"Stacks": [STACK]}]
        deployer = MagicMock()
        deployer.deploy.return_value = "CREATE_COMPLETE"

        output = make_bootstrapper(cfn, fake_clock, deployer).get_or_deploy(confirm=True)

        assert output.assets_bucket == "cf-assets-bucket"
        template, parameters, stack_name = deployer.deploy.call_args.args
        assert stack_name == BOOTSTRAP_STACK_NAME
        assert parameters.to_cloudformation() == []
        assert deployer.deploy.call_args.kwargs["confirm"] is True
        assert "AssetsBucket" in json.loads(template)["Outputs"]
        assert fake_clock.sleeps == [1]


class TestBootstrapTemplate:
    """Test the bundled bootstrap template."""

    def test_template_exports_assets_bucket(self):
        """Test the bundled template exports the assets bucket."""
        template = json.loads(load_bootstrap_template())
        assert template["Resources"]["AssetsBucket"]["Type"] == "AWS::S3::Bucket"
        assert template["Outputs"]["AssetsBucket"]["Value"] == {"Ref": "AssetsBucket"}
