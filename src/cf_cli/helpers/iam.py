"""IAM checks used to keep handler IDs unique within an account."""

import re

import typer
from botocore.exceptions import ClientError

from ..protocols import Prompter
from .error_handler import UserInputError, handle_warning
from .logger import get_logger

logger = get_logger("iam")

# The handler ID names the CloudFormation stack, the Lambda function and its
# IAM role. Role names are the tightest limit, so IDs stay at 64 characters.
MAX_HANDLER_ID_LENGTH = 64
HANDLER_ID_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9-]*")

HANDLER_ID_CONVENTION = (
    "By convention, we use 'cf-handler-[publisher]-[name]-[suffix]' as Handler IDs, "
    "for example: 'cf-handler-common-fate-aws-dev'."
)
HANDLER_ID_RULES = (
    "Handler IDs must start with a letter, contain only letters, digits and hyphens, "
    f"and be at most {MAX_HANDLER_ID_LENGTH} characters long."
)


def is_valid_handler_id(handler_id: str) -> bool:
    return (
        len(handler_id) <= MAX_HANDLER_ID_LENGTH
        and HANDLER_ID_PATTERN.fullmatch(handler_id) is not None
    )


def validate_handler_id(handler_id: str) -> str:
    """Return ``handler_id`` unchanged, or raise UserInputError if it is malformed."""
    if not is_valid_handler_id(handler_id):
        raise UserInputError(f"Invalid Handler ID '{handler_id}'", [HANDLER_ID_RULES])
    return handler_id


def role_exists(iam_client, role_name: str) -> bool:
    """Check whether an IAM role named ``role_name`` exists.

    Handler stacks create a role named after the handler ID, so an existing
    role means the ID is already taken. Errors other than ``NoSuchEntity``
    propagate.
    """
    try:
        iam_client.get_role(RoleName=role_name)
    except ClientError as e:
        if e.response["Error"]["Code"] == "NoSuchEntity":
            return False
        raise
    return True


def resolve_unique_handler_id(iam_client, default_id: str, prompter: Prompter) -> str:
    """Return a valid handler ID with no matching IAM role.

    Malformed answers are rejected at the prompt without calling IAM.
    """
    handler_id = default_id
    while True:
        if not is_valid_handler_id(handler_id):
            handle_warning(f"'{handler_id}' is not a valid Handler ID. {HANDLER_ID_RULES}")
        elif role_exists(iam_client, handler_id):
            handle_warning(
                f"A Lambda function named '{handler_id}' already exists in the account. "
                "You will need to set a custom Handler ID."
            )
            typer.echo(f"   {HANDLER_ID_CONVENTION}", err=True)
        else:
            return handler_id
        handler_id = prompter.text("Unique Handler ID").strip()
        logger.debug(f"Checking new handler ID {handler_id}")
