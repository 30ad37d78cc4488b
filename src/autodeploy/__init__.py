"""autodeploy: repository + deployment request -> Terraform configuration."""

__version__ = "0.1.0"
