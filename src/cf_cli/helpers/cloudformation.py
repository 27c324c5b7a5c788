"""
CloudFormation change-set deployments for provider and bootstrap stacks.
"""

import time
from typing import Callable, Dict, List, Optional, Tuple

from botocore.exceptions import ClientError, WaiterError
from rich.console import Console
from rich.table import Table

from ..models import ParameterSet
from ..protocols import Prompter
from .error_handler import CLIError, UserCancelledError, handle_info
from .logger import get_logger

logger = get_logger("cloudformation")

console = Console(stderr=True)

DEPLOY_SKIPPED = "DEPLOY_SKIPPED"
DELETE_COMPLETE = "DELETE_COMPLETE"
NO_CHANGES_MESSAGES = (
    "The submitted information didn't contain changes. "
    "Submit different information to create a change set.",
    "No updates are to be performed.",
)
CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]
SETTLE_POLL_INTERVAL = 5


def is_stack_missing(error: ClientError) -> bool:
    """CloudFormation reports a missing stack as a ``ValidationError``."""
    return (
        error.response["Error"]["Code"] == "ValidationError"
        and "does not exist" in error.response["Error"].get("Message", "")
    )


def colourise_status(status: str) -> str:
    if status.endswith("_FAILED") or "ROLLBACK" in status:
        return f"[red]{status}[/red]"
    if status.endswith("_COMPLETE"):
        return f"[green]{status}[/green]"
    return f"[yellow]{status}[/yellow]"


def template_argument(template: str) -> Dict[str, str]:
    """Pass ``https://`` templates by URL and anything else as the template body."""
    if template.startswith("https://"):
        return {"TemplateURL": template}
    return {"TemplateBody": template}


class Deployer:
    """Deploys and deletes stacks through the change-set protocol.

    Args:
        cfn_client: boto3 CloudFormation client
        prompter: Used to confirm a change set before executing it
        sleep: Sleep function (injectable for tests)
        poll_interval: Seconds between status checks while a stack settles
    """

    def __init__(
        self,
        cfn_client,
        prompter: Optional[Prompter] = None,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = SETTLE_POLL_INTERVAL,
    ):
        self.client = cfn_client
        self.prompter = prompter
        self.sleep = sleep
        self.poll_interval = poll_interval

    def describe_stack(self, stack_name: str) -> Optional[dict]:
        """Return the stack description, or None if the stack does not exist."""
        try:
            response = self.client.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_stack_missing(e):
                return None
            raise
        stacks = response.get("Stacks", [])
        return stacks[0] if stacks else None

    def get_stack_status(self, stack_name: str) -> Optional[str]:
        """Return the stack status, or None if the stack does not exist."""
        stack = self.describe_stack(stack_name)
        return stack["StackStatus"] if stack else None

    def get_stack_parameters(self, stack_name: str) -> Optional[Dict[str, str]]:
        """Return the stack's parameters in order, or None if the stack does not exist."""
        stack = self.describe_stack(stack_name)
        if stack is None:
            return None
        return {
            p["ParameterKey"]: p.get("ParameterValue", "") for p in stack.get("Parameters", [])
        }

    def get_stack_tags(self, stack_name: str) -> Dict[str, str]:
        """Return the stack's tags, or an empty dict if the stack does not exist."""
        stack = self.describe_stack(stack_name)
        if stack is None:
            return {}
        return {t["Key"]: t["Value"] for t in stack.get("Tags", [])}

    def create_change_set(
        self,
        template: str,
        parameters: ParameterSet,
        stack_name: str,
        tags: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        """Create a change set and wait for it to be ready.

        Returns:
            The change set name, or None when the change set has no changes
        """
        status = self.get_stack_status(stack_name)
        change_set_type = (
            "CREATE" if status in (None, "REVIEW_IN_PROGRESS") else "UPDATE"
        )
        change_set_name = f"{stack_name}-{int(time.time())}"
        logger.debug(
            f"Creating {change_set_type} change set {change_set_name} for {stack_name}"
        )

        self.client.create_change_set(
            StackName=stack_name,
            ChangeSetName=change_set_name,
            ChangeSetType=change_set_type,
            Parameters=parameters.to_cloudformation(),
            Capabilities=CAPABILITIES,
            Tags=[{"Key": k, "Value": v} for k, v in (tags or {}).items()],
            **template_argument(template),
        )

        waiter = self.client.get_waiter("change_set_create_complete")
        try:
            waiter.wait(
                StackName=stack_name,
                ChangeSetName=change_set_name,
                WaiterConfig={"Delay": 2, "MaxAttempts": 150},
            )
        except WaiterError:
            change_set = self.client.describe_change_set(
                StackName=stack_name, ChangeSetName=change_set_name
            )
            reason = change_set.get("StatusReason", "")
            if reason in NO_CHANGES_MESSAGES:
                self.client.delete_change_set(
                    StackName=stack_name, ChangeSetName=change_set_name
                )
                return None
            raise CLIError(f"creating changeset: {reason or change_set.get('Status')}")

        return change_set_name

    def format_change_set(self, stack_name: str, change_set_name: str) -> Table:
        """Render the resource changes of a change set as a table."""
        response = self.client.describe_change_set(
            StackName=stack_name, ChangeSetName=change_set_name
        )
        table = Table(title=f"Changes to {stack_name}")
        table.add_column("Action")
        table.add_column("Logical ID")
        table.add_column("Resource Type")
        table.add_column("Replacement")

        for change in response.get("Changes", []):
            resource = change.get("ResourceChange", {})
            table.add_row(
                resource.get("Action", ""),
                resource.get("LogicalResourceId", ""),
                resource.get("ResourceType", ""),
                resource.get("Replacement", "-"),
            )
        return table

    def confirm_change_set(self, stack_name: str, change_set_name: str) -> None:
        handle_info("The following CloudFormation changes will be made:")
        console.print(self.format_change_set(stack_name, change_set_name))
        if self.prompter is None or not self.prompter.confirm(
            "Do you wish to continue?", default=True
        ):
            raise UserCancelledError("user cancelled deployment")

    def failure_messages(self, stack_name: str, since: float) -> List[str]:
        """Collect failure reasons from stack events newer than ``since``."""
        try:
            response = self.client.describe_stack_events(StackName=stack_name)
        except ClientError as e:
            if is_stack_missing(e):
                return []
            raise

        messages = []
        for event in response.get("StackEvents", []):
            timestamp = event.get("Timestamp")
            if timestamp is not None and timestamp.timestamp() < since:
                continue
            if event.get("ResourceStatus", "").endswith("_FAILED") and event.get(
                "ResourceStatusReason"
            ):
                messages.append(
                    f"{event.get('LogicalResourceId')}: {event['ResourceStatusReason']}"
                )
        return list(reversed(messages))

    def wait_for_stack_to_settle(
        self, stack_name: str, since: float
    ) -> Tuple[str, List[str]]:
        """Poll until the stack leaves every ``*_IN_PROGRESS`` state."""
        while True:
            status = self.get_stack_status(stack_name)
            if status is None:
                return DELETE_COMPLETE, []
            if not status.endswith("_IN_PROGRESS"):
                return status, self.failure_messages(stack_name, since)
            logger.debug(f"Stack {stack_name} is {status}, waiting...")
            self.sleep(self.poll_interval)

    def report(self, status: str, messages: List[str]) -> None:
        console.print(f"ℹ️ Final stack status: {colourise_status(status)}")
        if messages:
            console.print("[yellow]Messages:[/yellow]")
            for message in messages:
                console.print(f"  - {message}")

    def deploy(
        self,
        template: str,
        parameters: ParameterSet,
        stack_name: str,
        confirm: bool = False,
        tags: Optional[Dict[str, str]] = None,
    ) -> str:
        """Deploy ``template`` as ``stack_name`` and return the final stack status.

        Args:
            template: Template URL (``https://...``) or template body
            parameters: Stack parameters
            stack_name: Name of the stack to create or update
            confirm: Skip the interactive review of the change set
            tags: Stack tags

        Returns:
            The settled stack status, or ``DEPLOY_SKIPPED`` when there is
            nothing to change

        Raises:
            UserCancelledError: if the user rejects the change set
        """
        started = time.time()
        change_set_name = self.create_change_set(template, parameters, stack_name, tags)
        if change_set_name is None:
            handle_info("Skipped deployment (there are no changes in the changeset)")
            return DEPLOY_SKIPPED

        if not confirm:
            self.confirm_change_set(stack_name, change_set_name)

        self.client.execute_change_set(
            StackName=stack_name, ChangeSetName=change_set_name
        )
        status, messages = self.wait_for_stack_to_settle(stack_name, started)
        self.report(status, messages)
        return status

    def delete(self, stack_name: str) -> str:
        """Delete ``stack_name`` and return the final stack status."""
        started = time.time()
        self.client.delete_stack(StackName=stack_name)
        status, messages = self.wait_for_stack_to_settle(stack_name, started)
        self.report(status, messages)
        return status
