"""
Kubernetes manifest generators for Docker Compose services.

Converts normalized compose services to Deployment (or DaemonSet,
ReplicationController, DeploymentConfig), Service, PersistentVolumeClaim,
Ingress and NetworkPolicy manifests. Every generator is a pure function
of the normalized service name, the service and the options, and returns
a plain dict tree.
"""

from typing import Any, Dict, Iterable, List, Optional

from . import __version__
from .types import (
    SELECTOR_LABEL,
    ComposeService,
    ConvertOptions,
    ControllerType,
    HealthCheck,
    Provider,
    RestartPolicy,
    VolumeType,
    parse_duration,
)

DEFAULT_IMAGE = "placeholder:latest"
DEFAULT_PVC_SIZE = "100Mi"
VERSION_ANNOTATION = "wompose.version"

# kind -> apiVersion
WORKLOAD_API_VERSIONS = {
    "Deployment": "apps/v1",
    "DaemonSet": "apps/v1",
    "ReplicationController": "v1",
    "DeploymentConfig": "apps.openshift.io/v1",
}

_CONTROLLER_KINDS = {
    ControllerType.DAEMONSET.value: "DaemonSet",
    ControllerType.REPLICATION_CONTROLLER.value: "ReplicationController",
}

_SERVICE_TYPES = {
    "nodeport": "NodePort",
    "loadbalancer": "LoadBalancer",
    "headless": "ClusterIP",
}

_RESTART_POLICIES = {
    RestartPolicy.NO: "Never",
    RestartPolicy.ON_FAILURE: "OnFailure",
}


def _metadata(name: str, service_name: str, options: ConvertOptions) -> Dict[str, Any]:
    """Object metadata shared by every generated resource."""
    metadata: Dict[str, Any] = {"name": name}
    if options.with_kompose_annotations:
        metadata["annotations"] = {VERSION_ANNOTATION: __version__}
    metadata["labels"] = {SELECTOR_LABEL: service_name}
    return metadata


def volume_name(name: str, index: int) -> str:
    """Name of the volume (and PVC) backing a service's index-th mount."""
    return f"{name}-vol{index}"


def workload_kind(service: ComposeService, options: ConvertOptions) -> str:
    """Resolve the workload kind for a service."""
    if options.provider == Provider.OPENSHIFT:
        return "DeploymentConfig"

    controller = service.overrides.controller_type or ControllerType(options.controller).value
    return _CONTROLLER_KINDS.get(controller.lower(), "Deployment")


def generate_workload(
    name: str,
    service: ComposeService,
    options: ConvertOptions,
) -> Dict[str, Any]:
    """
    Generate the workload manifest for a compose service.

    Args:
        name: Normalized service name
        service: Compose service
        options: Conversion options

    Returns:
        Deployment, DaemonSet, ReplicationController or DeploymentConfig dict
    """
    kind = workload_kind(service, options)

    spec: Dict[str, Any] = {}
    # Replicas are meaningless for a DaemonSet
    if kind != "DaemonSet":
        replicas = service.deploy.replicas
        spec["replicas"] = replicas if replicas is not None else options.replicas

    if kind == "ReplicationController" or options.provider == Provider.OPENSHIFT:
        spec["selector"] = {SELECTOR_LABEL: name}
    else:
        spec["selector"] = {"matchLabels": {SELECTOR_LABEL: name}}

    pod_spec: Dict[str, Any] = {
        "containers": [build_container(name, service)],
    }

    volumes = build_volumes(name, service, options)
    if volumes:
        pod_spec["volumes"] = volumes

    pod_spec["restartPolicy"] = _RESTART_POLICIES.get(service.restart, "Always")

    spec["template"] = {
        "metadata": {
            "labels": {SELECTOR_LABEL: name},
        },
        "spec": pod_spec,
    }

    return {
        "apiVersion": WORKLOAD_API_VERSIONS[kind],
        "kind": kind,
        "metadata": _metadata(name, name, options),
        "spec": spec,
    }


def build_container(name: str, service: ComposeService) -> Dict[str, Any]:
    """Build the single container spec for a compose service."""
    container: Dict[str, Any] = {
        "name": name,
        "image": service.image or DEFAULT_IMAGE,
    }

    if service.ports:
        container["ports"] = [{"containerPort": p.target} for p in service.ports]

    if service.environment:
        container["env"] = [
            {"name": key, "value": value}
            for key, value in service.environment.items()
        ]

    # Compose command overrides the image CMD (args), entrypoint the ENTRYPOINT (command)
    if service.command is not None:
        container["args"] = list(service.command)
    if service.entrypoint is not None:
        container["command"] = list(service.entrypoint)

    resources = _build_resources(service)
    if resources:
        container["resources"] = resources

    if service.volumes:
        mounts = []
        for i, vol in enumerate(service.volumes):
            mount: Dict[str, Any] = {
                "name": volume_name(name, i),
                "mountPath": vol.target,
            }
            if vol.read_only:
                mount["readOnly"] = True
            mounts.append(mount)
        container["volumeMounts"] = mounts

    if service.healthcheck:
        container["livenessProbe"] = _build_probe(service.healthcheck)

    pull_policy = service.overrides.image_pull_policy
    if pull_policy:
        container["imagePullPolicy"] = pull_policy

    return container


def _build_resources(service: ComposeService) -> Dict[str, Any]:
    """Build resource requests and limits."""
    resources: Dict[str, Any] = {}

    for key, source in (
        ("limits", service.deploy.limits),
        ("requests", service.deploy.reservations),
    ):
        if not source:
            continue
        values: Dict[str, str] = {}
        if source.memory:
            values["memory"] = source.memory
        if source.cpus:
            values["cpu"] = source.cpus
        if values:
            resources[key] = values

    return resources


def _build_probe(healthcheck: HealthCheck) -> Dict[str, Any]:
    """Build a Kubernetes liveness probe from a compose healthcheck."""
    probe: Dict[str, Any] = {}

    test = healthcheck.test
    if test:
        # CMD / CMD-SHELL mark the test form, they are not part of the command
        if test[0] in ("CMD", "CMD-SHELL"):
            test = test[1:]
        probe["exec"] = {"command": list(test)}

    if healthcheck.interval is not None:
        probe["periodSeconds"] = parse_duration(healthcheck.interval)
    if healthcheck.timeout is not None:
        probe["timeoutSeconds"] = parse_duration(healthcheck.timeout)
    if healthcheck.retries:
        probe["failureThreshold"] = healthcheck.retries
    if healthcheck.start_period is not None:
        probe["initialDelaySeconds"] = parse_duration(healthcheck.start_period)

    return probe


def build_volumes(
    name: str,
    service: ComposeService,
    options: ConvertOptions,
) -> List[Dict[str, Any]]:
    """Build pod volumes, one per compose volume entry, by position."""
    volumes = []

    for i, vol in enumerate(service.volumes):
        vol_name = volume_name(name, i)
        if options.volume_type == VolumeType.EMPTY_DIR:
            volumes.append({"name": vol_name, "emptyDir": {}})
        elif options.volume_type == VolumeType.HOST_PATH:
            volumes.append({"name": vol_name, "hostPath": {"path": vol.source}})
        elif options.volume_type == VolumeType.CONFIG_MAP:
            volumes.append({"name": vol_name, "configMap": {"name": vol_name}})
        else:
            volumes.append({
                "name": vol_name,
                "persistentVolumeClaim": {"claimName": vol_name},
            })

    return volumes


def generate_service(
    name: str,
    service: ComposeService,
    options: ConvertOptions,
    warnings: Optional[List[str]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Generate Kubernetes Service from compose service.

    Args:
        name: Normalized service name
        service: Compose service
        options: Conversion options
        warnings: Optional list that collects soft diagnostics

    Returns:
        Service manifest dict or None if no ports
    """
    if not service.ports:
        return None

    labels = service.overrides
    type_label = (labels.service_type or "").lower()
    service_type = _SERVICE_TYPES.get(type_label, "ClusterIP")

    node_port = None
    if service_type == "NodePort" and labels.node_port:
        try:
            node_port = int(labels.node_port)
        except ValueError:
            node_port = None
        if node_port is None and warnings is not None:
            warnings.append(
                f"Service {service.source_name or name}: ignoring non-numeric "
                f"node port {labels.node_port!r}"
            )

    ports = []
    for p in service.ports:
        port: Dict[str, Any] = {
            "name": f"{p.target}-tcp",
            "port": p.published,
            "targetPort": p.target,
        }
        if node_port is not None:
            port["nodePort"] = node_port
        ports.append(port)

    spec: Dict[str, Any] = {
        "type": service_type,
        "ports": ports,
        "selector": {SELECTOR_LABEL: name},
    }

    if type_label == "headless":
        spec["clusterIP"] = "None"

    if labels.external_traffic_policy:
        spec["externalTrafficPolicy"] = labels.external_traffic_policy

    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _metadata(name, name, options),
        "spec": spec,
    }


def generate_pvcs(
    name: str,
    service: ComposeService,
    options: ConvertOptions,
) -> List[Dict[str, Any]]:
    """
    Generate one PersistentVolumeClaim per compose volume entry.

    Returns an empty list unless the volume type is persistentVolumeClaim.
    """
    if options.volume_type != VolumeType.PERSISTENT_VOLUME_CLAIM:
        return []

    labels = service.overrides
    size = labels.volume_size or options.pvc_request_size or DEFAULT_PVC_SIZE

    pvcs = []
    for i in range(len(service.volumes)):
        pvc: Dict[str, Any] = {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": _metadata(volume_name(name, i), name, options),
            "spec": {
                "accessModes": ["ReadWriteOnce"],
                "resources": {
                    "requests": {
                        "storage": size,
                    },
                },
            },
        }

        if labels.storage_class_name:
            pvc["spec"]["storageClassName"] = labels.storage_class_name

        pvcs.append(pvc)

    return pvcs


def ingress_hosts(name: str, expose: str) -> List[str]:
    """Hosts named by a wompose.service.expose label value."""
    if expose == "true":
        return [f"{name}.local"]
    return [h.strip() for h in expose.split(",") if h.strip()]


def generate_ingress(
    name: str,
    service: ComposeService,
    options: ConvertOptions,
) -> Optional[Dict[str, Any]]:
    """
    Generate an Ingress for a service carrying the expose label.

    Only the first port is routed.

    Returns:
        Ingress manifest dict or None if not exposed or no ports
    """
    labels = service.overrides
    if not labels.expose or not service.ports:
        return None

    hosts = ingress_hosts(name, labels.expose)
    service_port = service.ports[0].target

    rules = [
        {
            "host": host,
            "http": {
                "paths": [
                    {
                        "path": "/",
                        "pathType": "Prefix",
                        "backend": {
                            "service": {
                                "name": name,
                                "port": {"number": service_port},
                            },
                        },
                    },
                ],
            },
        }
        for host in hosts
    ]

    spec: Dict[str, Any] = {}
    if labels.ingress_class_name:
        spec["ingressClassName"] = labels.ingress_class_name
    spec["rules"] = rules

    if labels.tls_secret:
        spec["tls"] = [{"hosts": hosts, "secretName": labels.tls_secret}]

    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "Ingress",
        "metadata": _metadata(f"{name}-ingress", name, options),
        "spec": spec,
    }


def generate_network_policy(
    name: str,
    services: Iterable[ComposeService],
) -> Dict[str, Any]:
    """
    Generate a NetworkPolicy admitting traffic from dependent services.

    Args:
        name: Normalized name of the service being protected
        services: Every service in the document

    Returns:
        NetworkPolicy manifest dict. Without dependents the single empty
        ingress rule allows all traffic.
    """
    ingress: List[Dict[str, Any]] = []
    for other in services:
        if name in other.depends_on:
            ingress.append({
                "from": [
                    {"podSelector": {"matchLabels": {SELECTOR_LABEL: other.name}}},
                ],
            })

    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicy",
        "metadata": {
            "name": f"{name}-network-policy",
            "labels": {SELECTOR_LABEL: name},
        },
        "spec": {
            "podSelector": {"matchLabels": {SELECTOR_LABEL: name}},
            "policyTypes": ["Ingress"],
            "ingress": ingress or [{}],
        },
    }
