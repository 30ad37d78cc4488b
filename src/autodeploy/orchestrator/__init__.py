from .terraform import DeploymentResult, TerraformRunner, resolve_url

__all__ = ["TerraformRunner", "DeploymentResult", "resolve_url"]
