"""Terraform-style provisioning of Azure Automation variables."""

__version__ = "0.1.0"
