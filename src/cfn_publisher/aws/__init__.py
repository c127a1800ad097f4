"""
AWS service access for the publisher.

- clients: cached boto3 clients per service and region
- bucket: bucket existence check and creation
- objects: prefix clearing, uploads and object tagging
"""
