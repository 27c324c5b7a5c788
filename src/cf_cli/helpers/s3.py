"""S3 helper functions for staging provider assets."""

from ..models import ProviderDescriptor, StagedAssets
from .logger import get_logger

logger = get_logger("s3")

S3_ARN_PREFIX = "arn:aws:s3:::"
HANDLER_ASSET = "handler.zip"
TEMPLATE_ASSET = "cloudformation.json"


def copy_source(s3_arn: str) -> str:
    """Convert a registry S3 ARN into a ``bucket/key`` copy source.

    boto3 URL-encodes string copy sources itself.
    """
    if s3_arn.startswith(S3_ARN_PREFIX):
        return s3_arn[len(S3_ARN_PREFIX):]
    return s3_arn


def template_url(bucket: str, region: str, key: str) -> str:
    """Virtual-hosted-style HTTPS URL of an object."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def copy_object(s3_client, bucket: str, key: str, source_arn: str) -> None:
    logger.debug(f"Copying {source_arn} into {bucket}/{key}")
    s3_client.copy_object(Bucket=bucket, Key=key, CopySource=copy_source(source_arn))
    logger.debug(f"Successfully copied {source_arn} into {bucket}/{key}")


def stage_assets(
    s3_client, bucket: str, region: str, provider: ProviderDescriptor
) -> StagedAssets:
    """Copy a provider's handler bundle and template into ``bucket``.

    Objects land under ``{publisher}/{name}/{version}/`` and overwrite any
    earlier copy. The handler bundle is copied first; if either copy fails
    the error propagates and nothing else is attempted.

    Args:
        s3_client: boto3 S3 client for the target account
        bucket: Destination bucket (usually the bootstrap bucket)
        region: Region of the destination bucket
        provider: Provider whose assets are copied

    Returns:
        StagedAssets with the template URL and the asset path prefix
    """
    asset_path = provider.asset_path

    copy_object(
        s3_client, bucket, f"{asset_path}/{HANDLER_ASSET}", provider.lambda_asset_s3_arn
    )
    template_key = f"{asset_path}/{TEMPLATE_ASSET}"
    copy_object(s3_client, bucket, template_key, provider.cfn_template_s3_arn)

    return StagedAssets(
        template_url=template_url(bucket, region, template_key),
        asset_key=asset_path,
    )


def presigned_template_url(s3_client, bucket: str, key: str, expires_in: int = 3600) -> str:
    """Presigned GET URL for a template, so CloudFormation can read it from a private bucket."""
    logger.debug(f"Presigning {bucket}/{key} for {expires_in}s")
    return s3_client.generate_presigned_url(
        "get_object", Params={"Bucket": bucket, "Key": key}, ExpiresIn=expires_in
    )
