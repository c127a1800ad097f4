"""AWS client management."""
import boto3
import logging
from typing import Any, Dict, Optional, Tuple
from cfn_publisher.settings import get_settings

logger = logging.getLogger(__name__)


class AWSClientManager:
    """Singleton manager for AWS service clients, cached per service and region."""
    _instance = None
    _clients: Dict[Tuple[str, str], Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(AWSClientManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize the client manager with settings."""
        settings = get_settings()

        self.default_region = settings.aws_region
        self.endpoint_url = settings.aws_endpoint_url

        logger.info(f"Initializing AWSClientManager")
        logger.info(f"  Default region: {self.default_region}")
        logger.info(f"  Endpoint: {self.endpoint_url}")

    def get_client(self, service_name: str, region: Optional[str] = None) -> Any:
        """Get or create an AWS service client for a region."""
        region = region or self.default_region
        cache_key = (service_name, region)
        if cache_key in self._clients:
            return self._clients[cache_key]

        client_kwargs = {
            'region_name': region
        }

        # Endpoint override (localstack, moto server)
        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url

        try:
            client = boto3.client(service_name, **client_kwargs)
            self._clients[cache_key] = client
            logger.debug(f"Created {service_name} client for {region}")
            return client
        except Exception as e:
            logger.error(f"Error creating {service_name} client: {str(e)}")
            raise

    def clear_clients(self):
        """Clear all cached clients."""
        self._clients.clear()
        logger.debug("Cleared all AWS clients")


def get_s3_client(region: Optional[str] = None):
    """Get the S3 client."""
    return AWSClientManager().get_client('s3', region)


def get_cloudformation_client(region: Optional[str] = None):
    """Get the CloudFormation client."""
    return AWSClientManager().get_client('cloudformation', region)
