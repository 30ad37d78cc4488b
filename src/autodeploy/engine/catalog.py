"""Per-provider resource templates used by the decision engine.

Each catalog turns an abstract resource kind into a provider-native Terraform
resource type plus attributes. Configurable values are expressed as ``Var``
references. The engine declares exactly the variables the templates use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..schemas.plan import (
    Block,
    Interpolation,
    OutputSpec,
    Ref,
    ResourceKind,
    ResourceSpec,
    Topology,
    Var,
    VariableSpec,
)
from ..schemas.signals import (
    CloudProvider,
    DatabaseEngine,
    DeploymentIntent,
    RepositorySummary,
)

SUPPORTED_PROVIDERS = (CloudProvider.AWS, CloudProvider.GCP)

DEFAULT_REGIONS = {
    CloudProvider.AWS: "us-east-1",
    CloudProvider.GCP: "us-central1",
}

INSTANCE_SIZES = {
    (Topology.SINGLE_VM, CloudProvider.AWS): "t3.micro",
    (Topology.SINGLE_VM, CloudProvider.GCP): "e2-micro",
    (Topology.CONTAINER_SERVICE, CloudProvider.AWS): "t3.small",
    (Topology.CONTAINER_SERVICE, CloudProvider.GCP): "e2-small",
    (Topology.KUBERNETES_CLUSTER, CloudProvider.AWS): "t3.medium",
    (Topology.KUBERNETES_CLUSTER, CloudProvider.GCP): "e2-medium",
}

DATABASE_PORTS = {
    DatabaseEngine.POSTGRESQL: 5432,
    DatabaseEngine.MYSQL: 3306,
}

DEFAULT_APP_PORT = 80

# Logical names, stable across providers
COMPUTE_NAMES = {
    Topology.SINGLE_VM: "app_server",
    Topology.CONTAINER_SERVICE: "app_service",
    Topology.KUBERNETES_CLUSTER: "app_cluster",
    Topology.SERVERLESS: "app_function",
}
FIREWALL_NAME = "app_firewall"
DATABASE_NAME = "app_db"
STORAGE_NAME = "static_assets"
CDN_NAME = "cdn"
REGISTRY_NAME = "app_registry"

LAMBDA_RUNTIMES = {
    "python": ("python3.12", "app.handler"),
    "javascript": ("nodejs20.x", "index.handler"),
    "typescript": ("nodejs20.x", "index.handler"),
}
CLOUD_FUNCTION_RUNTIMES = {
    "python": ("python312", "handler"),
    "javascript": ("nodejs20", "handler"),
    "typescript": ("nodejs20", "handler"),
}

SYSTEM_PACKAGES = {
    "python": "python3 python3-pip",
    "javascript": "nodejs npm",
    "typescript": "nodejs npm",
}


@dataclass(frozen=True)
class DerivationContext:
    """Everything a template needs to know about the deployment being planned."""

    provider: CloudProvider
    topology: Topology
    summary: RepositorySummary
    intent: DeploymentIntent
    database_engine: DatabaseEngine = DatabaseEngine.POSTGRESQL
    instance_size: Optional[str] = None

    @property
    def app_port(self) -> int:
        return self.summary.entry_port or DEFAULT_APP_PORT

    @property
    def app_slug(self) -> str:
        """Short name used for cloud-side resource names."""
        url = self.summary.repository_url.rstrip("/")
        name = url.rsplit("/", 1)[-1] if url else ""
        if name.endswith(".git"):
            name = name[:-4]
        slug = "".join(c if c.isalnum() else "-" for c in name.lower()).strip("-")
        return slug[:30] or "app"


def _literal(text: str) -> str:
    """Make arbitrary text safe to embed in an Interpolation template."""
    return text.replace("{", "{{").replace("}", "}}")


def startup_script(summary: RepositorySummary) -> Interpolation:
    """Boot script for single-VM deployments: clone, build, start."""
    packages = SYSTEM_PACKAGES.get(summary.primary_language, "")
    lines = [
        "#!/bin/bash",
        "set -e",
        "apt-get update -y",
        f"apt-get install -y git {packages}".rstrip(),
        "git clone {0} /opt/app",
        "cd /opt/app",
        # Apps bound to loopback are unreachable from outside the VM
        "find . -name '*.py' -o -name '*.js' | xargs -r sed -i 's/127\\.0\\.0\\.1/0.0.0.0/g; s/localhost/0.0.0.0/g'",
    ]
    if summary.build_command:
        lines.append(_literal(summary.build_command))
    if summary.start_command:
        lines.append(f"nohup {_literal(summary.start_command)} > /var/log/app.log 2>&1 &")
    else:
        lines.append("echo 'No start command detected' > /var/log/app.log")
    return Interpolation(template="\n".join(lines) + "\n", args=(Var(name="repository_url"),))


class ProviderCatalog(ABC):
    """Resource templates for one cloud provider."""

    provider: CloudProvider
    # Variables referenced by the provider block itself
    header_variables: tuple[str, ...] = ("region",)

    def compute(self, ctx: DerivationContext) -> ResourceSpec:
        builders = {
            Topology.SINGLE_VM: self.virtual_machine,
            Topology.CONTAINER_SERVICE: self.container_service,
            Topology.KUBERNETES_CLUSTER: self.cluster,
            Topology.SERVERLESS: self.function,
        }
        return builders[ctx.topology](ctx)

    @abstractmethod
    def virtual_machine(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    @abstractmethod
    def container_service(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    @abstractmethod
    def cluster(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    @abstractmethod
    def function(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    @abstractmethod
    def security_group(
        self,
        ctx: DerivationContext,
        compute: ResourceSpec,
        database: Optional[ResourceSpec],
    ) -> ResourceSpec:
        ...

    @abstractmethod
    def database(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    @abstractmethod
    def object_storage(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    @abstractmethod
    def cdn(self, ctx: DerivationContext, storage: ResourceSpec) -> ResourceSpec:
        ...

    @abstractmethod
    def registry(self, ctx: DerivationContext) -> ResourceSpec:
        ...

    # resource type -> (output name, attribute, description)
    output_attributes: dict[str, tuple[str, str, str]] = {}

    def outputs_for(self, resource: ResourceSpec) -> dict[str, OutputSpec]:
        entry = self.output_attributes.get(resource.resource_type)
        if entry is None:
            return {}
        name, attribute, description = entry
        return {
            name: OutputSpec(
                value=Ref(logical_name=resource.logical_name, attribute=attribute),
                description=description,
            )
        }

    def ingress_ports(self, ctx: DerivationContext) -> list[int]:
        if ctx.topology == Topology.SINGLE_VM:
            ports = [22, 80]
        else:
            ports = [80, 443]
        if ctx.app_port not in ports:
            ports.append(ctx.app_port)
        return ports


class AwsCatalog(ProviderCatalog):
    provider = CloudProvider.AWS
    header_variables = ("region",)

    output_attributes = {
        "aws_instance": ("public_ip", "public_ip", "Public IP address of the application server"),
        "aws_apprunner_service": ("service_url", "service_url", "Public URL of the container service"),
        "aws_eks_cluster": ("cluster_endpoint", "endpoint", "Kubernetes API endpoint"),
        "aws_lambda_function": ("function_arn", "arn", "ARN of the deployed function"),
        "aws_db_instance": ("database_endpoint", "endpoint", "Database connection endpoint (host:port)"),
        "aws_s3_bucket": ("bucket_name", "bucket", "Name of the static asset bucket"),
        "aws_cloudfront_distribution": ("cdn_endpoint", "domain_name", "CDN domain name"),
        "aws_ecr_repository": ("registry_url", "repository_url", "Container registry URL"),
    }

    def virtual_machine(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.COMPUTE,
            logical_name=COMPUTE_NAMES[Topology.SINGLE_VM],
            resource_type="aws_instance",
            attributes={
                "ami": Var(name="ami_id"),
                "instance_type": Var(name="instance_size"),
                "key_name": Var(name="key_pair_name"),
                "associate_public_ip_address": True,
                "user_data": startup_script(ctx.summary),
                "vpc_security_group_ids": [Ref(logical_name=FIREWALL_NAME, attribute="id")],
                "tags": {"Name": f"{ctx.app_slug}-server"},
            },
        )

    def container_service(self, ctx: DerivationContext) -> ResourceSpec:
        image = Block(attributes={
            "image_identifier": Interpolation(
                template="{0}:latest",
                args=(Ref(logical_name=REGISTRY_NAME, attribute="repository_url"),),
            ),
            "image_repository_type": "ECR",
            "image_configuration": Block(attributes={"port": str(ctx.app_port)}),
        })
        return ResourceSpec(
            kind=ResourceKind.COMPUTE,
            logical_name=COMPUTE_NAMES[Topology.CONTAINER_SERVICE],
            resource_type="aws_apprunner_service",
            attributes={
                "service_name": f"{ctx.app_slug}-service",
                "source_configuration": Block(attributes={
                    "auto_deployments_enabled": False,
                    "image_repository": image,
                }),
                "instance_configuration": Block(attributes={
                    "cpu": Var(name="container_cpu"),
                    "memory": Var(name="container_memory"),
                }),
            },
        )

    def cluster(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.CLUSTER_CONTROL_PLANE,
            logical_name=COMPUTE_NAMES[Topology.KUBERNETES_CLUSTER],
            resource_type="aws_eks_cluster",
            attributes={
                "name": f"{ctx.app_slug}-cluster",
                "role_arn": Var(name="cluster_role_arn"),
                "vpc_config": Block(attributes={"subnet_ids": Var(name="subnet_ids")}),
            },
        )

    def function(self, ctx: DerivationContext) -> ResourceSpec:
        runtime, handler = LAMBDA_RUNTIMES.get(ctx.summary.primary_language, LAMBDA_RUNTIMES["python"])
        return ResourceSpec(
            kind=ResourceKind.FUNCTION_APP,
            logical_name=COMPUTE_NAMES[Topology.SERVERLESS],
            resource_type="aws_lambda_function",
            attributes={
                "function_name": f"{ctx.app_slug}-function",
                "role": Var(name="lambda_role_arn"),
                "runtime": runtime,
                "handler": handler,
                "filename": Var(name="function_package"),
                "memory_size": 256,
                "timeout": 30,
            },
        )

    def security_group(
        self,
        ctx: DerivationContext,
        compute: ResourceSpec,
        database: Optional[ResourceSpec],
    ) -> ResourceSpec:
        tags: dict[str, Any] = {"Name": f"{ctx.app_slug}-sg"}
        # An instance lists its group in vpc_security_group_ids; a back-reference would be a cycle
        if compute.resource_type != "aws_instance":
            tags["AttachedTo"] = Ref(logical_name=compute.logical_name, attribute="arn")
        ingress = [
            Block(attributes={
                "description": f"Port {port}",
                "from_port": port,
                "to_port": port,
                "protocol": "tcp",
                "cidr_blocks": ["0.0.0.0/0"],
            })
            for port in self.ingress_ports(ctx)
        ]
        if database is not None:
            db_port = Ref(logical_name=database.logical_name, attribute="port")
            ingress.append(Block(attributes={
                "description": "Database access from the application",
                "from_port": db_port,
                "to_port": db_port,
                "protocol": "tcp",
                "self": True,
            }))
        return ResourceSpec(
            kind=ResourceKind.NETWORK_SECURITY_GROUP,
            logical_name=FIREWALL_NAME,
            resource_type="aws_security_group",
            attributes={
                "name_prefix": f"{ctx.app_slug}-sg-",
                "description": "Inbound rules for the application",
                "ingress": ingress,
                "egress": [Block(attributes={
                    "from_port": 0,
                    "to_port": 0,
                    "protocol": "-1",
                    "cidr_blocks": ["0.0.0.0/0"],
                })],
                "tags": tags,
            },
        )

    def database(self, ctx: DerivationContext) -> ResourceSpec:
        engine = "mysql" if ctx.database_engine == DatabaseEngine.MYSQL else "postgres"
        return ResourceSpec(
            kind=ResourceKind.MANAGED_DATABASE,
            logical_name=DATABASE_NAME,
            resource_type="aws_db_instance",
            attributes={
                "identifier": f"{ctx.app_slug}-db",
                "engine": engine,
                "instance_class": Var(name="db_instance_class"),
                "allocated_storage": 20,
                "username": Var(name="db_username"),
                "password": Var(name="db_password"),
                "port": DATABASE_PORTS[ctx.database_engine],
                "publicly_accessible": False,
                "skip_final_snapshot": True,
            },
        )

    def object_storage(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.OBJECT_STORAGE,
            logical_name=STORAGE_NAME,
            resource_type="aws_s3_bucket",
            attributes={
                "bucket": Var(name="bucket_name"),
                "force_destroy": True,
            },
        )

    def cdn(self, ctx: DerivationContext, storage: ResourceSpec) -> ResourceSpec:
        origin_id = "static-assets"
        return ResourceSpec(
            kind=ResourceKind.CDN_DISTRIBUTION,
            logical_name=CDN_NAME,
            resource_type="aws_cloudfront_distribution",
            attributes={
                "enabled": True,
                "default_root_object": "index.html",
                "origin": Block(attributes={
                    "domain_name": Ref(logical_name=storage.logical_name, attribute="bucket_regional_domain_name"),
                    "origin_id": origin_id,
                }),
                "default_cache_behavior": Block(attributes={
                    "allowed_methods": ["GET", "HEAD"],
                    "cached_methods": ["GET", "HEAD"],
                    "target_origin_id": origin_id,
                    "viewer_protocol_policy": "redirect-to-https",
                    "forwarded_values": Block(attributes={
                        "query_string": False,
                        "cookies": Block(attributes={"forward": "none"}),
                    }),
                }),
                "restrictions": Block(attributes={
                    "geo_restriction": Block(attributes={"restriction_type": "none"}),
                }),
                "viewer_certificate": Block(attributes={"cloudfront_default_certificate": True}),
            },
        )

    def registry(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.CONTAINER_REGISTRY,
            logical_name=REGISTRY_NAME,
            resource_type="aws_ecr_repository",
            attributes={
                "name": ctx.app_slug,
                "image_tag_mutability": "MUTABLE",
                "force_delete": True,
            },
        )


class GcpCatalog(ProviderCatalog):
    provider = CloudProvider.GCP
    header_variables = ("project_id", "region")

    output_attributes = {
        "google_compute_instance": (
            "public_ip",
            "network_interface[0].access_config[0].nat_ip",
            "Public IP address of the application server",
        ),
        "google_cloud_run_v2_service": ("service_url", "uri", "Public URL of the container service"),
        "google_container_cluster": ("cluster_endpoint", "endpoint", "Kubernetes API endpoint"),
        "google_cloudfunctions2_function": ("function_url", "url", "HTTPS URL of the deployed function"),
        "google_sql_database_instance": ("database_endpoint", "connection_name", "Cloud SQL connection name"),
        "google_storage_bucket": ("bucket_name", "name", "Name of the static asset bucket"),
        "google_compute_backend_bucket": ("cdn_endpoint", "self_link", "CDN backend bucket"),
        "google_artifact_registry_repository": ("registry_url", "id", "Artifact Registry repository"),
    }

    def virtual_machine(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.COMPUTE,
            logical_name=COMPUTE_NAMES[Topology.SINGLE_VM],
            resource_type="google_compute_instance",
            attributes={
                "name": f"{ctx.app_slug}-server",
                "machine_type": Var(name="instance_size"),
                "zone": Interpolation(template="{0}-a", args=(Var(name="region"),)),
                "tags": [f"{ctx.app_slug}-server"],
                "boot_disk": Block(attributes={
                    "initialize_params": Block(attributes={"image": "debian-cloud/debian-12"}),
                }),
                "network_interface": Block(attributes={
                    "network": "default",
                    "access_config": Block(),
                }),
                "metadata_startup_script": startup_script(ctx.summary),
            },
        )

    def container_service(self, ctx: DerivationContext) -> ResourceSpec:
        image = Interpolation(
            template="{0}-docker.pkg.dev/{1}/{2}/app:latest",
            args=(
                Var(name="region"),
                Var(name="project_id"),
                Ref(logical_name=REGISTRY_NAME, attribute="repository_id"),
            ),
        )
        return ResourceSpec(
            kind=ResourceKind.COMPUTE,
            logical_name=COMPUTE_NAMES[Topology.CONTAINER_SERVICE],
            resource_type="google_cloud_run_v2_service",
            attributes={
                "name": f"{ctx.app_slug}-service",
                "location": Var(name="region"),
                "template": Block(attributes={
                    "containers": Block(attributes={
                        "image": image,
                        "ports": Block(attributes={"container_port": ctx.app_port}),
                        "resources": Block(attributes={
                            "limits": {"cpu": Var(name="container_cpu"), "memory": Var(name="container_memory")},
                        }),
                    }),
                }),
            },
        )

    def cluster(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.CLUSTER_CONTROL_PLANE,
            logical_name=COMPUTE_NAMES[Topology.KUBERNETES_CLUSTER],
            resource_type="google_container_cluster",
            attributes={
                "name": f"{ctx.app_slug}-cluster",
                "location": Var(name="region"),
                "initial_node_count": 1,
                "deletion_protection": False,
                "node_config": Block(attributes={"machine_type": Var(name="instance_size")}),
            },
        )

    def function(self, ctx: DerivationContext) -> ResourceSpec:
        runtime, entry_point = CLOUD_FUNCTION_RUNTIMES.get(
            ctx.summary.primary_language, CLOUD_FUNCTION_RUNTIMES["python"]
        )
        return ResourceSpec(
            kind=ResourceKind.FUNCTION_APP,
            logical_name=COMPUTE_NAMES[Topology.SERVERLESS],
            resource_type="google_cloudfunctions2_function",
            attributes={
                "name": f"{ctx.app_slug}-function",
                "location": Var(name="region"),
                "build_config": Block(attributes={"runtime": runtime, "entry_point": entry_point}),
                "service_config": Block(attributes={
                    "max_instance_count": 3,
                    "available_memory": "256M",
                    "timeout_seconds": 60,
                }),
            },
        )

    def security_group(
        self,
        ctx: DerivationContext,
        compute: ResourceSpec,
        database: Optional[ResourceSpec],
    ) -> ResourceSpec:
        allow = [Block(attributes={
            "protocol": "tcp",
            "ports": [str(port) for port in self.ingress_ports(ctx)],
        })]
        attributes: dict[str, Any] = {
            "name": f"{ctx.app_slug}-firewall",
            "network": "default",
            "direction": "INGRESS",
            "source_ranges": ["0.0.0.0/0"],
        }
        if compute.resource_type == "google_compute_instance":
            attributes["target_tags"] = Ref(logical_name=compute.logical_name, attribute="tags")
            description = "Inbound rules for the application server"
            args: tuple = ()
        else:
            description = "Inbound rules for {0}"
            args = (Ref(logical_name=compute.logical_name, attribute="name"),)
        if database is not None:
            allow.append(Block(attributes={
                "protocol": "tcp",
                "ports": [str(DATABASE_PORTS[ctx.database_engine])],
            }))
            description += ", database " + "{" + str(len(args)) + "}"
            args = args + (Ref(logical_name=database.logical_name, attribute="connection_name"),)
        attributes["description"] = Interpolation(template=description, args=args) if args else description
        attributes["allow"] = allow
        return ResourceSpec(
            kind=ResourceKind.NETWORK_SECURITY_GROUP,
            logical_name=FIREWALL_NAME,
            resource_type="google_compute_firewall",
            attributes=attributes,
        )

    def database(self, ctx: DerivationContext) -> ResourceSpec:
        version = "MYSQL_8_0" if ctx.database_engine == DatabaseEngine.MYSQL else "POSTGRES_15"
        return ResourceSpec(
            kind=ResourceKind.MANAGED_DATABASE,
            logical_name=DATABASE_NAME,
            resource_type="google_sql_database_instance",
            attributes={
                "name": f"{ctx.app_slug}-db",
                "database_version": version,
                "region": Var(name="region"),
                "root_password": Var(name="db_password"),
                "deletion_protection": False,
                "settings": Block(attributes={"tier": Var(name="db_instance_class")}),
            },
        )

    def object_storage(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.OBJECT_STORAGE,
            logical_name=STORAGE_NAME,
            resource_type="google_storage_bucket",
            attributes={
                "name": Var(name="bucket_name"),
                "location": "US",
                "force_destroy": True,
                "uniform_bucket_level_access": True,
                "website": Block(attributes={
                    "main_page_suffix": "index.html",
                    "not_found_page": "404.html",
                }),
            },
        )

    def cdn(self, ctx: DerivationContext, storage: ResourceSpec) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.CDN_DISTRIBUTION,
            logical_name=CDN_NAME,
            resource_type="google_compute_backend_bucket",
            attributes={
                "name": f"{ctx.app_slug}-cdn",
                "bucket_name": Ref(logical_name=storage.logical_name, attribute="name"),
                "enable_cdn": True,
            },
        )

    def registry(self, ctx: DerivationContext) -> ResourceSpec:
        return ResourceSpec(
            kind=ResourceKind.CONTAINER_REGISTRY,
            logical_name=REGISTRY_NAME,
            resource_type="google_artifact_registry_repository",
            attributes={
                "location": Var(name="region"),
                "repository_id": ctx.app_slug,
                "format": "DOCKER",
            },
        )


CATALOGS: dict[CloudProvider, ProviderCatalog] = {
    CloudProvider.AWS: AwsCatalog(),
    CloudProvider.GCP: GcpCatalog(),
}


def variable_spec(name: str, ctx: DerivationContext) -> VariableSpec:
    """Declaration for a variable the templates reference."""
    provider = ctx.provider
    if name == "region":
        return VariableSpec(description="Cloud region to deploy into", default=DEFAULT_REGIONS[provider])
    if name == "project_id":
        return VariableSpec(description="GCP project ID")
    if name == "instance_size":
        size = ctx.instance_size or INSTANCE_SIZES.get((ctx.topology, provider))
        return VariableSpec(description="Machine size for application compute", default=size)
    if name == "ami_id":
        return VariableSpec(description="AMI for the application server", default="ami-0c02fb55956c7d316")
    if name == "key_pair_name":
        return VariableSpec(description="Name of an existing EC2 key pair for SSH access")
    if name == "repository_url":
        return VariableSpec(
            description="Git URL of the application repository",
            default=ctx.summary.repository_url or None,
        )
    if name == "db_username":
        return VariableSpec(description="Database administrator username", default="appadmin")
    if name == "db_password":
        return VariableSpec(description="Database administrator password", sensitive=True)
    if name == "db_instance_class":
        default = "db.t3.micro" if provider == CloudProvider.AWS else "db-f1-micro"
        return VariableSpec(description="Managed database instance class", default=default)
    if name == "bucket_name":
        return VariableSpec(description="Globally unique name for the asset bucket", default=f"{ctx.app_slug}-static-assets")
    if name == "container_cpu":
        default = "1024" if provider == CloudProvider.AWS else "1"
        return VariableSpec(description="CPU allocated to each container", default=default)
    if name == "container_memory":
        default = "2048" if provider == CloudProvider.AWS else "512Mi"
        return VariableSpec(description="Memory allocated to each container", default=default)
    if name == "cluster_role_arn":
        return VariableSpec(description="IAM role ARN for the EKS control plane")
    if name == "subnet_ids":
        return VariableSpec(description="Subnets for the cluster control plane", type="list(string)")
    if name == "lambda_role_arn":
        return VariableSpec(description="IAM execution role ARN for the function")
    if name == "function_package":
        return VariableSpec(description="Path to the zipped function package", default="function.zip")
    raise KeyError(f"No declaration template for variable '{name}'")
