"""Bootstrap stack detection and deployment.

The bootstrap stack owns the S3 bucket that provider assets are copied into
before a handler stack is deployed. There is one per account and region.
"""

import time
from pathlib import Path
from typing import Callable

from botocore.exceptions import ClientError

from ..models import BootstrapOutput, ParameterSet
from .cloudformation import Deployer
from .error_handler import NotDeployedError, StackIntegrityError, handle_info
from .logger import get_logger
from .retry import fibonacci_backoff, retry_with_deadline

logger = get_logger("bootstrapper")

BOOTSTRAP_STACK_NAME = "CommonFateProviderAssetsBootstrapStack"
DETECT_RETRY_BASE = 1
DETECT_MAX_DURATION = 20


def load_bootstrap_template() -> str:
    template_path = Path(__file__).parent.parent / "resources" / "bootstrap.json"
    with open(template_path, "r") as f:
        return f.read()


class Bootstrapper:
    """Finds or creates the bootstrap bucket in the current account and region."""

    def __init__(
        self,
        cfn_client,
        deployer: Deployer,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = cfn_client
        self.deployer = deployer
        self.sleep = sleep
        self.clock = clock

    def _describe(self) -> BootstrapOutput:
        try:
            response = self.client.describe_stacks(StackName=BOOTSTRAP_STACK_NAME)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ValidationError":
                raise NotDeployedError()
            raise

        stacks = response.get("Stacks", [])
        if len(stacks) != 1:
            raise StackIntegrityError(f"expected 1 stack but got {len(stacks)}")
        return BootstrapOutput.from_stack_outputs(stacks[0].get("Outputs", []))

    def detect(self, retry_on_not_deployed: bool = False) -> BootstrapOutput:
        """Read the bootstrap stack outputs.

        Args:
            retry_on_not_deployed: Keep retrying a missing stack with Fibonacci
                backoff for up to 20 seconds. Used right after a deploy, when
                the stack may not be visible yet.

        Raises:
            NotDeployedError: if the stack does not exist
            StackIntegrityError: if CloudFormation returns other than one stack
        """
        if retry_on_not_deployed:
            limits = {"max_duration": DETECT_MAX_DURATION}
        else:
            limits = {"max_retries": 0}

        return retry_with_deadline(
            self._describe,
            backoff=fibonacci_backoff(DETECT_RETRY_BASE),
            retryable=lambda e: isinstance(e, NotDeployedError),
            sleep=self.sleep,
            clock=self.clock,
            **limits,
        )

    def deploy(self, confirm: bool = False) -> str:
        """Deploy the bundled bootstrap template with no parameters."""
        return self.deployer.deploy(
            load_bootstrap_template(), ParameterSet(), BOOTSTRAP_STACK_NAME, confirm=confirm
        )

    def get_or_deploy(self, confirm: bool = False) -> BootstrapOutput:
        """Return the bootstrap outputs, deploying the stack first if needed."""
        try:
            return self.detect()
        except NotDeployedError:
            handle_info(
                "The bootstrap stack has not been deployed in this account and "
                "region yet, deploying it now"
            )

        status = self.deploy(confirm=confirm)
        logger.debug(f"Bootstrap stack deployment finished with status {status}")
        return self.detect(retry_on_not_deployed=True)
