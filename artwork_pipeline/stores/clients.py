"""Boto3 client construction (LocalStack for local dev)."""

import logging
from typing import Any

import boto3

from artwork_pipeline.config import PipelineConfig

logger = logging.getLogger(__name__)


def _client_kwargs(config: PipelineConfig) -> dict[str, Any]:
    if config.localstack_endpoint:
        return {
            "endpoint_url": config.localstack_endpoint,
            "region_name": config.aws_region,
            "aws_access_key_id": "test",
            "aws_secret_access_key": "test",
        }
    return {"region_name": config.aws_region}


def create_s3_client(config: PipelineConfig):
    """Create an S3 client configured for LocalStack or AWS."""
    if config.localstack_endpoint:
        logger.info("Using LocalStack S3 at %s", config.localstack_endpoint)
    return boto3.client("s3", **_client_kwargs(config))


def create_dynamodb_resource(config: PipelineConfig):
    """Create a DynamoDB service resource configured for LocalStack or AWS."""
    if config.localstack_endpoint:
        logger.info("Using LocalStack DynamoDB at %s", config.localstack_endpoint)
    return boto3.resource("dynamodb", **_client_kwargs(config))


def create_sqs_client(config: PipelineConfig):
    """Create an SQS client configured for LocalStack or AWS."""
    if config.localstack_endpoint:
        logger.info("Using LocalStack SQS at %s", config.localstack_endpoint)
    return boto3.client("sqs", **_client_kwargs(config))
