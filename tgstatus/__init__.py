"""tgstatus — deployment status of Terragrunt-managed stacks."""

__version__ = "0.1.0"
