"""CloudFormation stack operations for published templates."""
import logging
from typing import Any, Dict, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from cfn_publisher.errors import StackError

logger = logging.getLogger(__name__)

DEFAULT_CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]


def to_parameters(parameters: Optional[Dict[str, str]]) -> List[Dict[str, str]]:
    """{'EnvName': 'sm-mlops'} -> [{'ParameterKey': 'EnvName', 'ParameterValue': 'sm-mlops'}]"""
    return [
        {'ParameterKey': key, 'ParameterValue': value}
        for key, value in (parameters or {}).items()
    ]


class StackManager:
    """Creates, inspects and deletes stacks from templates published to S3."""

    def __init__(self, region: str, cfn_client: Any = None,
                 wait_delay: int = 15, wait_max_attempts: int = 240):
        self.region = region
        if cfn_client is None:
            from cfn_publisher.aws.clients import get_cloudformation_client
            cfn_client = get_cloudformation_client(region)
        self.cfn_client = cfn_client
        self.waiter_config = {'Delay': wait_delay, 'MaxAttempts': wait_max_attempts}

    def validate_template(self, url: str) -> Dict[str, Any]:
        """Validate a template by URL and return its parameters and capabilities."""
        try:
            response = self.cfn_client.validate_template(TemplateURL=url)
        except (ClientError, BotoCoreError) as e:
            raise StackError(f"Template validation failed for {url}: {e}") from e

        logger.info(f"✅ Template is valid: {url}")
        return {
            'parameters': [p['ParameterKey'] for p in response.get('Parameters', [])],
            'capabilities': response.get('Capabilities', []),
            'description': response.get('Description'),
        }

    def create_stack(
        self,
        stack_name: str,
        url: str,
        parameters: Optional[Dict[str, str]] = None,
        capabilities: Sequence[str] = DEFAULT_CAPABILITIES,
        disable_rollback: bool = True,
    ) -> str:
        """Start stack creation and return the stack id."""
        try:
            response = self.cfn_client.create_stack(
                StackName=stack_name,
                TemplateURL=url,
                Parameters=to_parameters(parameters),
                Capabilities=list(capabilities),
                DisableRollback=disable_rollback,
            )
        except (ClientError, BotoCoreError) as e:
            raise StackError(f"Failed to create stack {stack_name}: {e}") from e

        stack_id = response['StackId']
        logger.info(f"Creating stack {stack_name}: {stack_id}")
        return stack_id

    def wait_for_create(self, stack_name: str) -> None:
        self._wait('stack_create_complete', stack_name)
        logger.info(f"✅ Stack {stack_name} created")

    def describe_outputs(self, stack_name: str) -> Dict[str, str]:
        """Stack outputs as OutputKey -> OutputValue."""
        try:
            response = self.cfn_client.describe_stacks(StackName=stack_name)
        except (ClientError, BotoCoreError) as e:
            raise StackError(f"Failed to describe stack {stack_name}: {e}") from e

        stacks = response.get('Stacks', [])
        if not stacks:
            raise StackError(f"Stack {stack_name} not found")
        return {
            output['OutputKey']: output['OutputValue']
            for output in stacks[0].get('Outputs', [])
        }

    def stack_status(self, stack_name: str) -> Optional[str]:
        """Current status, or None if the stack does not exist."""
        try:
            response = self.cfn_client.describe_stacks(StackName=stack_name)
        except (ClientError, BotoCoreError) as e:
            if 'does not exist' in str(e):
                return None
            raise StackError(f"Failed to describe stack {stack_name}: {e}") from e
        stacks = response.get('Stacks', [])
        return stacks[0]['StackStatus'] if stacks else None

    def delete_stack_if_exists(self, stack_name: str) -> bool:
        """Delete the stack unless it is already gone. True if deletion started."""
        if self.stack_status(stack_name) in (None, 'DELETE_COMPLETE'):
            logger.info(f"Stack {stack_name} does not exist, nothing to delete")
            return False
        self.delete_stack(stack_name)
        return True

    def delete_stack(self, stack_name: str) -> None:
        try:
            self.cfn_client.delete_stack(StackName=stack_name)
        except (ClientError, BotoCoreError) as e:
            raise StackError(f"Failed to delete stack {stack_name}: {e}") from e
        logger.info(f"Deleting stack {stack_name}")

    def wait_for_delete(self, stack_name: str) -> None:
        self._wait('stack_delete_complete', stack_name)
        logger.info(f"✅ Stack {stack_name} deleted")

    def _wait(self, waiter_name: str, stack_name: str) -> None:
        waiter = self.cfn_client.get_waiter(waiter_name)
        try:
            waiter.wait(StackName=stack_name, WaiterConfig=self.waiter_config)
        except (ClientError, BotoCoreError) as e:
            raise StackError(f"Waiting for {waiter_name} on {stack_name} failed: {e}") from e
