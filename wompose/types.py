"""
Type definitions for wompose.

These dataclasses represent a normalized Docker Compose document and the
options that control its conversion to Kubernetes manifests. Every
shape-polymorphic Compose field is collapsed into one canonical shape
here, so the generators never branch on input shape.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

SELECTOR_LABEL = "io.wompose.service"

DEFAULT_DURATION_SECONDS = 30

_DURATION_RE = re.compile(r"^(\d+)(s|m|h)?$")


class Provider(str, Enum):
    """Target platform."""
    KUBERNETES = "kubernetes"
    OPENSHIFT = "openshift"


class ControllerType(str, Enum):
    """Default workload controller."""
    DEPLOYMENT = "deployment"
    DAEMONSET = "daemonset"
    REPLICATION_CONTROLLER = "replicationcontroller"


class VolumeType(str, Enum):
    """How compose volumes become Kubernetes volume sources."""
    PERSISTENT_VOLUME_CLAIM = "persistentVolumeClaim"
    EMPTY_DIR = "emptyDir"
    HOST_PATH = "hostPath"
    CONFIG_MAP = "configMap"


class RestartPolicy(str, Enum):
    """Container restart policy."""
    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    UNLESS_STOPPED = "unless-stopped"
    NO = "no"


# wompose.* label vocabulary
LABEL_CONTROLLER_TYPE = "wompose.controller.type"
LABEL_SERVICE_TYPE = "wompose.service.type"
LABEL_NODEPORT_PORT = "wompose.service.nodeport.port"
LABEL_EXTERNAL_TRAFFIC_POLICY = "wompose.service.external-traffic-policy"
LABEL_EXPOSE = "wompose.service.expose"
LABEL_INGRESS_CLASS_NAME = "wompose.service.expose.ingress-class-name"
LABEL_TLS_SECRET = "wompose.service.expose.tls-secret"
LABEL_VOLUME_SIZE = "wompose.volume.size"
LABEL_STORAGE_CLASS_NAME = "wompose.volume.storage-class-name"
LABEL_IMAGE_PULL_POLICY = "wompose.image-pull-policy"


def normalize_service_name(name: str) -> str:
    """Convert a compose service name to its Kubernetes object name."""
    return re.sub(r"[_.]", "-", name).lower()


def parse_duration(duration: Any) -> int:
    """
    Parse a compose duration ("30s", "2m", "1h", "10") to seconds.

    Anything that does not match falls back to 30 seconds.
    """
    match = _DURATION_RE.match(str(duration).strip())
    if not match:
        return DEFAULT_DURATION_SECONDS

    value = int(match.group(1))
    unit = match.group(2) or "s"
    if unit == "m":
        return value * 60
    elif unit == "h":
        return value * 3600
    return value


def _stringify(value: Any) -> str:
    """Render a scalar the way it reads in a compose file."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _to_bool(value: Any) -> bool:
    """
    Read an option flag.

    Raises:
        ValueError: If the value is not a boolean or a true/false string
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "1"):
        return True
    if text in ("false", "no", "0", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _shaped(
    data: Dict,
    key: str,
    shapes: tuple,
    owner: str,
    warnings: Optional[List[str]],
) -> Any:
    """
    Fetch an optional field, dropping it if it has the wrong shape.

    A dropped field is reported through `warnings` and reads as absent.
    """
    value = data.get(key)
    if value is None or isinstance(value, shapes):
        return value
    if warnings is not None:
        warnings.append(
            f"{owner}: ignoring {key} of unsupported type {type(value).__name__}"
        )
    return None


def _split_words(value: Any) -> List[str]:
    """Normalize a string-or-list compose field to a list of strings."""
    if isinstance(value, (list, tuple)):
        return [_stringify(v) for v in value]
    return _stringify(value).split(" ")


def parse_key_values(data: Any) -> Dict[str, str]:
    """
    Normalize a compose mapping-or-list field to a string mapping.

    Used for `environment` and `labels`, which both accept either
    `{KEY: VALUE}` or `["KEY=VALUE", ...]`. Any other shape reads as empty.
    """
    if not data or not isinstance(data, (list, dict)):
        return {}

    result: Dict[str, str] = {}
    if isinstance(data, list):
        for item in data:
            item = _stringify(item)
            if "=" in item:
                key, value = item.split("=", 1)
                result[key] = value
            else:
                result[item] = ""
    else:
        for key, value in data.items():
            result[str(key)] = _stringify(value)
    return result


@dataclass
class PortMapping:
    """Port mapping configuration."""
    published: int
    target: int

    @classmethod
    def parse(cls, port_spec: str | int | dict) -> "PortMapping":
        """
        Parse port specification from docker-compose format.

        Raises:
            ValueError: If the target port is not an integer
        """
        if isinstance(port_spec, dict):
            target = int(str(port_spec.get("target")).strip())
            published = port_spec.get("published")
            if published is None or published == "":
                return cls(published=target, target=target)
            return cls(published=int(str(published).strip()), target=target)

        # String format: "80", "8080:80", "127.0.0.1:8080:80", "53:53/udp"
        port_str = str(port_spec).strip()
        if "/" in port_str:
            port_str = port_str.rsplit("/", 1)[0]

        parts = port_str.split(":")
        target = int(parts[-1])
        if len(parts) == 1 or not parts[-2]:
            return cls(published=target, target=target)
        return cls(published=int(parts[-2]), target=target)


@dataclass
class VolumeMount:
    """Volume mount configuration."""
    source: str
    target: str
    read_only: bool = False

    @classmethod
    def parse(cls, volume_spec: str | dict) -> "VolumeMount":
        """Parse volume specification from docker-compose format."""
        if isinstance(volume_spec, dict):
            source = _stringify(volume_spec.get("source"))
            return cls(
                source=source,
                target=_stringify(volume_spec.get("target")) or source,
                read_only=bool(volume_spec.get("read_only", False)),
            )

        # String format: "source:target" or "source:target:ro" or "target"
        parts = str(volume_spec).split(":")
        source = parts[0]
        target = parts[1] if len(parts) >= 2 and parts[1] else source
        read_only = len(parts) >= 3 and parts[2] == "ro"
        return cls(source=source, target=target, read_only=read_only)


@dataclass
class HealthCheck:
    """Container health check configuration."""
    test: List[str] = field(default_factory=list)
    interval: Optional[str] = None
    timeout: Optional[str] = None
    retries: Optional[int] = None
    start_period: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["HealthCheck"]:
        """Parse from docker-compose healthcheck format."""
        if not data or not isinstance(data, dict) or data.get("disable"):
            return None

        test = _split_words(data["test"]) if data.get("test") else []
        if test and test[0] == "NONE":
            return None

        def duration(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None or value == "":
                return None
            return _stringify(value)

        return cls(
            test=test,
            interval=duration("interval"),
            timeout=duration("timeout"),
            retries=_to_int(data.get("retries")),
            start_period=duration("start_period"),
        )


@dataclass
class ResourceLimits:
    """Resource limits configuration."""
    cpus: Optional[str] = None
    memory: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["ResourceLimits"]:
        """Parse from docker-compose deploy.resources format."""
        if not data or not isinstance(data, dict):
            return None

        return cls(
            cpus=_stringify(data["cpus"]) if data.get("cpus") is not None else None,
            memory=_stringify(data["memory"]) if data.get("memory") is not None else None,
        )


@dataclass
class DeployConfig:
    """Deployment configuration from docker-compose."""
    replicas: Optional[int] = None
    limits: Optional[ResourceLimits] = None
    reservations: Optional[ResourceLimits] = None

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict],
        warnings: Optional[List[str]] = None,
        owner: str = "deploy",
    ) -> "DeployConfig":
        """Parse from docker-compose deploy format."""
        if not data or not isinstance(data, dict):
            return cls()

        resources = _shaped(data, "resources", (dict,), owner, warnings) or {}
        limits = _shaped(resources, "limits", (dict,), owner, warnings)
        reservations = _shaped(resources, "reservations", (dict,), owner, warnings)
        return cls(
            replicas=_to_int(data.get("replicas")),
            limits=ResourceLimits.from_dict(limits),
            reservations=ResourceLimits.from_dict(reservations),
        )


@dataclass(frozen=True)
class ServiceLabels:
    """Typed view of the wompose.* labels on one service."""
    controller_type: Optional[str] = None
    service_type: Optional[str] = None
    node_port: Optional[str] = None
    external_traffic_policy: Optional[str] = None
    expose: Optional[str] = None
    ingress_class_name: Optional[str] = None
    tls_secret: Optional[str] = None
    volume_size: Optional[str] = None
    storage_class_name: Optional[str] = None
    image_pull_policy: Optional[str] = None

    @classmethod
    def from_labels(cls, labels: Dict[str, str]) -> "ServiceLabels":
        # Empty values count as unset
        def get(key: str) -> Optional[str]:
            return labels.get(key) or None

        return cls(
            controller_type=get(LABEL_CONTROLLER_TYPE),
            service_type=get(LABEL_SERVICE_TYPE),
            node_port=get(LABEL_NODEPORT_PORT),
            external_traffic_policy=get(LABEL_EXTERNAL_TRAFFIC_POLICY),
            expose=get(LABEL_EXPOSE),
            ingress_class_name=get(LABEL_INGRESS_CLASS_NAME),
            tls_secret=get(LABEL_TLS_SECRET),
            volume_size=get(LABEL_VOLUME_SIZE),
            storage_class_name=get(LABEL_STORAGE_CLASS_NAME),
            image_pull_policy=get(LABEL_IMAGE_PULL_POLICY),
        )


@dataclass
class ComposeService:
    """Parsed and normalized docker-compose service."""
    name: str
    source_name: str = ""
    image: Optional[str] = None
    build: Optional[Dict[str, Any]] = None
    command: Optional[List[str]] = None
    entrypoint: Optional[List[str]] = None
    environment: Dict[str, str] = field(default_factory=dict)
    ports: List[PortMapping] = field(default_factory=list)
    volumes: List[VolumeMount] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)
    healthcheck: Optional[HealthCheck] = None
    deploy: DeployConfig = field(default_factory=DeployConfig)
    labels: Dict[str, str] = field(default_factory=dict)
    networks: List[str] = field(default_factory=list)
    restart: RestartPolicy = RestartPolicy.ALWAYS
    warnings: List[str] = field(default_factory=list)

    @property
    def overrides(self) -> ServiceLabels:
        """Recognized wompose.* labels."""
        return ServiceLabels.from_labels(self.labels)

    @classmethod
    def from_dict(cls, name: str, data: Optional[Dict]) -> "ComposeService":
        """Parse from docker-compose service definition."""
        data = data or {}
        k8s_name = normalize_service_name(name)
        warnings: List[str] = []
        owner = f"Service {name}"

        def get(key: str, *shapes: type) -> Any:
            return _shaped(data, key, shapes, owner, warnings)

        # Parse ports, skipping entries that are not integer ports
        ports = []
        for p in get("ports", list) or []:
            try:
                ports.append(PortMapping.parse(p))
            except (TypeError, ValueError):
                warnings.append(f"{owner}: ignoring unsupported port {p!r}")

        volumes = []
        for v in get("volumes", list) or []:
            if isinstance(v, (str, dict)):
                volumes.append(VolumeMount.parse(v))
            else:
                warnings.append(f"{owner}: ignoring unsupported volume {v!r}")

        command = get("command", str, list)
        if command is not None:
            command = _split_words(command)

        entrypoint = get("entrypoint", str, list)
        if entrypoint is not None:
            entrypoint = _split_words(entrypoint)

        # depends_on may be a list or a mapping of name -> condition
        depends_on: List[str] = []
        for dep in get("depends_on", list, dict) or []:
            dep = normalize_service_name(str(dep))
            if dep not in depends_on:
                depends_on.append(dep)

        restart_map = {
            "always": RestartPolicy.ALWAYS,
            "on-failure": RestartPolicy.ON_FAILURE,
            "unless-stopped": RestartPolicy.UNLESS_STOPPED,
            "no": RestartPolicy.NO,
        }
        restart_str = _stringify(data.get("restart", "always"))
        # YAML 1.1 reads a bare `no` as false
        if restart_str == "false":
            restart_str = "no"
        restart = restart_map.get(restart_str.split(":")[0], RestartPolicy.ALWAYS)

        build = get("build", str, dict)
        networks = get("networks", list, dict) or []

        return cls(
            name=k8s_name,
            source_name=name,
            image=_stringify(data["image"]) if data.get("image") else None,
            build=build if isinstance(build, dict) else
                  {"context": build} if build else None,
            command=command,
            entrypoint=entrypoint,
            environment=parse_key_values(get("environment", list, dict)),
            ports=ports,
            volumes=volumes,
            depends_on=depends_on,
            healthcheck=HealthCheck.from_dict(get("healthcheck", dict)),
            deploy=DeployConfig.from_dict(get("deploy", dict), warnings, owner),
            labels=parse_key_values(get("labels", list, dict)),
            networks=list(networks),
            restart=restart,
            warnings=warnings,
        )


@dataclass
class ComposeDocument:
    """Parsed docker-compose document."""
    services: Dict[str, ComposeService] = field(default_factory=dict)
    version: Optional[str] = None
    volumes: Dict[str, Any] = field(default_factory=dict)
    networks: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> "ComposeDocument":
        """
        Parse from docker-compose content.

        Services stay keyed by the name written in the file, in file
        order; each ComposeService carries its normalized name.
        """
        services = {}
        for svc_name, svc_data in (data.get("services") or {}).items():
            services[str(svc_name)] = ComposeService.from_dict(str(svc_name), svc_data)

        version = data.get("version")
        return cls(
            services=services,
            version=str(version) if version is not None else None,
            # Top-level sections are not used for generation
            volumes=dict(_shaped(data, "volumes", (dict,), "compose file", None) or {}),
            networks=dict(_shaped(data, "networks", (dict,), "compose file", None) or {}),
        )

    def name_collisions(self) -> Dict[str, List[str]]:
        """Normalized names shared by more than one compose service."""
        by_name: Dict[str, List[str]] = {}
        for source_name, service in self.services.items():
            by_name.setdefault(service.name, []).append(source_name)
        return {name: sources for name, sources in by_name.items() if len(sources) > 1}


@dataclass
class ConvertOptions:
    """Options that control manifest generation."""
    provider: Provider = Provider.KUBERNETES
    controller: ControllerType = ControllerType.DEPLOYMENT
    replicas: int = 1
    volume_type: VolumeType = VolumeType.PERSISTENT_VOLUME_CLAIM
    generate_json: bool = False
    with_kompose_annotations: bool = False
    generate_network_policies: bool = False
    pvc_request_size: Optional[str] = None
    namespace: Optional[str] = None

    # camelCase keys used by option records / files
    _ALIASES = {
        "volumeType": "volume_type",
        "generateJson": "generate_json",
        "withKomposeAnnotations": "with_kompose_annotations",
        "generateNetworkPolicies": "generate_network_policies",
        "pvcRequestSize": "pvc_request_size",
    }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "ConvertOptions":
        """
        Parse from an options mapping, filling defaults for missing keys.

        Raises:
            ValueError: If an enum option has an unknown value
        """
        if not data:
            return cls()

        values = {cls._ALIASES.get(k, k): v for k, v in data.items()}
        defaults = cls()

        def get(key: str) -> Any:
            value = values.get(key)
            return getattr(defaults, key) if value is None else value

        try:
            provider = Provider(get("provider"))
            controller = ControllerType(get("controller"))
            volume_type = VolumeType(get("volume_type"))
            generate_json = _to_bool(get("generate_json"))
            with_kompose_annotations = _to_bool(get("with_kompose_annotations"))
            generate_network_policies = _to_bool(get("generate_network_policies"))
        except ValueError as e:
            raise ValueError(f"Invalid option value: {e}") from e

        replicas = _to_int(get("replicas"))
        if replicas is None:
            raise ValueError(f"Invalid option value: replicas={values.get('replicas')!r}")

        pvc_request_size = values.get("pvc_request_size")
        namespace = values.get("namespace")

        return cls(
            provider=provider,
            controller=controller,
            replicas=replicas,
            volume_type=volume_type,
            generate_json=generate_json,
            with_kompose_annotations=with_kompose_annotations,
            generate_network_policies=generate_network_policies,
            pvc_request_size=str(pvc_request_size) if pvc_request_size else None,
            namespace=str(namespace) if namespace else None,
        )


@dataclass
class OutputFile:
    """One generated manifest file."""
    name: str
    content: str
    kind: str


@dataclass
class ConvertResult:
    """Generated files plus soft diagnostics."""
    files: List[OutputFile] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
