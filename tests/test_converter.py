"""Tests for the wompose conversion orchestrator."""

import json
import logging

import pytest
import yaml

from wompose.converter import convert_compose
from wompose.errors import ConversionError, MalformedInputError, MissingServicesError
from wompose.types import ConvertOptions, VolumeType


WEB_APP_COMPOSE = """
services:
  Web_App:
    image: nginx
    ports:
      - "8080:80"
    labels:
      wompose.service.expose: "true"
"""

STACK_COMPOSE = """
version: "3.8"
services:
  db:
    image: postgres:15
    volumes:
      - db-data:/var/lib/postgresql/data
      - ./init:/docker-entrypoint-initdb.d:ro
    environment:
      POSTGRES_PASSWORD: secret
  api:
    image: myapi:latest
    ports:
      - "8080:8080"
    depends_on:
      - db
  worker:
    image: myworker:latest
    command: python worker.py
volumes:
  db-data: {}
"""


@pytest.fixture
def options():
    return ConvertOptions()


def _by_name(result):
    return {f.name: f for f in result.files}


class TestConvertCompose:
    def test_web_app_scenario(self, options):
        result = convert_compose(WEB_APP_COMPOSE, options)
        files = _by_name(result)

        assert [f.name for f in result.files] == [
            "web-app-deployment.yaml",
            "web-app-service.yaml",
            "web-app-ingress.yaml",
        ]
        assert [f.kind for f in result.files] == ["Deployment", "Service", "Ingress"]
        assert result.warnings == []

        deployment = yaml.safe_load(files["web-app-deployment.yaml"].content)
        assert deployment["metadata"]["name"] == "web-app"
        assert deployment["spec"]["template"]["spec"]["containers"][0]["image"] == "nginx"

        service = yaml.safe_load(files["web-app-service.yaml"].content)
        assert service["metadata"]["name"] == "web-app"
        assert service["spec"]["type"] == "ClusterIP"
        assert service["spec"]["ports"] == [
            {"name": "80-tcp", "port": 8080, "targetPort": 80},
        ]

        ingress = yaml.safe_load(files["web-app-ingress.yaml"].content)
        assert ingress["metadata"]["name"] == "web-app-ingress"
        rule = ingress["spec"]["rules"][0]
        assert rule["host"] == "web-app.local"
        path = rule["http"]["paths"][0]
        assert path["path"] == "/"
        assert path["backend"]["service"] == {"name": "web-app", "port": {"number": 80}}

    def test_file_order_follows_services(self, options):
        result = convert_compose(STACK_COMPOSE, options)

        assert [f.name for f in result.files] == [
            "db-deployment.yaml",
            "db-vol0-pvc.yaml",
            "db-vol1-pvc.yaml",
            "api-deployment.yaml",
            "api-service.yaml",
            "worker-deployment.yaml",
        ]

    def test_presence_rules(self, options):
        result = convert_compose(STACK_COMPOSE, options)
        kinds = [f.kind for f in result.files]

        assert kinds.count("Deployment") == 3
        assert kinds.count("Service") == 1
        assert kinds.count("PersistentVolumeClaim") == 2
        assert "Ingress" not in kinds
        assert "NetworkPolicy" not in kinds

    def test_no_pvcs_for_empty_dir(self):
        result = convert_compose(
            STACK_COMPOSE, ConvertOptions(volume_type=VolumeType.EMPTY_DIR),
        )
        assert "PersistentVolumeClaim" not in [f.kind for f in result.files]

    def test_network_policy_scenario(self):
        result = convert_compose(
            STACK_COMPOSE, ConvertOptions(generate_network_policies=True),
        )
        policies = [f for f in result.files if f.kind == "NetworkPolicy"]

        # Second pass comes after every per-service file
        assert result.files[-3:] == policies
        assert [p.name for p in policies] == [
            "db-networkpolicy.yaml",
            "api-networkpolicy.yaml",
            "worker-networkpolicy.yaml",
        ]

        db_policy = yaml.safe_load(policies[0].content)
        assert db_policy["spec"]["ingress"] == [
            {"from": [{"podSelector": {"matchLabels": {"io.wompose.service": "api"}}}]},
        ]

        api_policy = yaml.safe_load(policies[1].content)
        assert api_policy["spec"]["ingress"] == [{}]

    def test_json_output(self):
        result = convert_compose(WEB_APP_COMPOSE, ConvertOptions(generate_json=True))

        assert [f.name for f in result.files] == [
            "web-app-deployment.json",
            "web-app-service.json",
            "web-app-ingress.json",
        ]
        deployment = json.loads(result.files[0].content)
        assert deployment["kind"] == "Deployment"
        assert result.files[0].content.startswith('{\n  "apiVersion"')

    def test_json_and_yaml_agree(self):
        options = dict(generate_network_policies=True, with_kompose_annotations=True)
        as_yaml = convert_compose(STACK_COMPOSE, ConvertOptions(**options))
        as_json = convert_compose(
            STACK_COMPOSE, ConvertOptions(generate_json=True, **options),
        )

        assert len(as_yaml.files) == len(as_json.files)
        for y, j in zip(as_yaml.files, as_json.files):
            assert y.kind == j.kind
            assert yaml.safe_load(y.content) == json.loads(j.content)

    def test_yaml_not_wrapped(self, options):
        long_value = "x" * 300
        text = f"""
services:
  app:
    image: app
    environment:
      LONG: {long_value}
"""
        content = convert_compose(text, options).files[0].content
        assert f"value: {long_value}\n" in content

    def test_yaml_key_order(self, options):
        content = convert_compose(WEB_APP_COMPOSE, options).files[0].content
        lines = content.splitlines()
        assert lines[:3] == ["apiVersion: apps/v1", "kind: Deployment", "metadata:"]

    def test_json_compose_input(self, options):
        text = json.dumps({"services": {"web": {"image": "nginx", "ports": [80]}}})
        result = convert_compose(text, options)
        assert [f.kind for f in result.files] == ["Deployment", "Service"]


class TestWarnings:
    def test_name_collision_warning(self, options, caplog):
        text = """
services:
  web.app:
    image: a
  web_app:
    image: b
"""
        with caplog.at_level(logging.WARNING, logger="wompose.converter"):
            result = convert_compose(text, options)

        assert [f.name for f in result.files] == [
            "web-app-deployment.yaml",
            "web-app-deployment.yaml",
        ]
        assert len(result.warnings) == 1
        assert "web-app" in result.warnings[0]
        assert result.warnings[0] in caplog.text

    def test_port_warning(self, options):
        text = """
services:
  web:
    image: nginx
    ports:
      - "8000-8010:8000-8010"
"""
        result = convert_compose(text, options)
        assert [f.kind for f in result.files] == ["Deployment"]
        assert len(result.warnings) == 1


class TestLooselyTypedFields:
    @pytest.mark.parametrize("snippet,field", [
        ("environment: FOO=bar", "environment"),
        ("labels: x", "labels"),
        ("deploy: fast", "deploy"),
        ("deploy:\n      resources: big", "resources"),
        ("deploy:\n      resources:\n        limits: 1cpu", "limits"),
        ("healthcheck: curl", "healthcheck"),
        ("ports: 80", "ports"),
        ("depends_on: db", "depends_on"),
        ("volumes: /data", "volumes"),
        ("command: {run: app}", "command"),
        ("networks: front", "networks"),
    ])
    def test_wrong_shape_is_ignored_with_warning(self, snippet, field):
        text = f"services:\n  web:\n    image: nginx\n    {snippet}\n"
        result = convert_compose(text, ConvertOptions(generate_network_policies=True))

        assert [f.kind for f in result.files] == ["Deployment", "NetworkPolicy"]
        assert len(result.warnings) == 1
        assert field in result.warnings[0]

    def test_ignored_field_reads_as_absent(self):
        text = """
services:
  web:
    image: nginx
    environment: FOO=bar
    healthcheck: curl
"""
        result = convert_compose(text, ConvertOptions())
        container = yaml.safe_load(result.files[0].content)["spec"]["template"]["spec"]["containers"][0]
        assert "env" not in container
        assert "livenessProbe" not in container

    def test_string_depends_on_is_not_split_into_characters(self):
        text = """
services:
  d:
    image: a
  api:
    image: b
    depends_on: d
"""
        result = convert_compose(text, ConvertOptions(generate_network_policies=True))
        policy = yaml.safe_load(result.files[-2].content)
        assert policy["metadata"]["name"] == "d-network-policy"
        assert policy["spec"]["ingress"] == [{}]

    def test_top_level_sections_of_wrong_shape(self, options):
        text = "services:\n  web:\n    image: nginx\nvolumes: [data]\nnetworks: front\n"
        result = convert_compose(text, options)
        assert [f.kind for f in result.files] == ["Deployment"]


class TestConversionErrors:
    def test_malformed_input(self, options):
        with pytest.raises(MalformedInputError) as exc_info:
            convert_compose("services: [unclosed", options)
        assert str(exc_info.value).startswith("Invalid YAML:")

    def test_missing_services(self, options):
        with pytest.raises(MissingServicesError) as exc_info:
            convert_compose("version: '3'\nvolumes: {}\n", options)
        assert str(exc_info.value) == "Invalid compose file: missing services section"

    def test_empty_services(self, options):
        with pytest.raises(MissingServicesError):
            convert_compose("services: {}\n", options)

    def test_empty_document(self, options):
        with pytest.raises(MissingServicesError):
            convert_compose("", options)

    def test_services_not_a_mapping(self, options):
        with pytest.raises(MalformedInputError):
            convert_compose("services:\n  - web\n", options)

    def test_errors_are_value_errors(self, options):
        with pytest.raises(ValueError):
            convert_compose("services: {}\n", options)
        assert issubclass(MalformedInputError, ConversionError)
