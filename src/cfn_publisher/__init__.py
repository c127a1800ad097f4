"""
CloudFormation artifact packaging and publishing.

Turns a tree of CloudFormation templates and MLOps seed code into
deterministic archives and publishes them to Amazon S3 under a project
prefix:
- Bucket provisioning and template placeholder substitution
- Source, template and seed-code archives
- `aws cloudformation package` for nested templates
- Upload, object tagging and stack lifecycle helpers
"""

__version__ = "1.0.0"
