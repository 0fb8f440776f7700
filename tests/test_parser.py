"""Tests for raw parameter parsing."""

import json

import pytest

from ecs_deployer.core.errors import ValidationError
from ecs_deployer.core.parser import parse_request


def test_minimal_request_maps_absent_fields_to_no_change(base_params):
    request = parse_request(base_params)

    assert request.image.endswith("api:2.0.0")
    assert request.cpu is None
    assert request.memory is None
    assert request.desired_count is None
    assert request.environment_variables is None
    assert request.secrets is None
    assert request.mount_points is None
    assert request.volumes is None
    assert request.autoscaling.enabled is False


def test_blank_strings_mean_no_change(base_params):
    request = parse_request(
        {**base_params, "cpu": "", "desired_count": "  ", "environment_variables": ""}
    )

    assert request.cpu is None
    assert request.desired_count is None
    assert request.environment_variables is None


def test_string_inputs_are_converted(base_params):
    request = parse_request(
        {
            **base_params,
            "cpu": "1024",
            "memory": "2048",
            "desired_count": "3",
            "environment_variables": '[{"name": "NODE_ENV", "value": "production"}]',
            "secrets": json.dumps(
                [{"name": "API_KEY", "valueFrom": "arn:aws:ssm:us-east-1:1:parameter/key"}]
            ),
            "mount_points": '[{"sourceVolume": "data", "containerPath": "/data"}]',
            "volumes": '[{"name": "data", "efsVolumeConfiguration": {"fileSystemId": "fs-1"}}]',
            "enable_autoscaling": "true",
            "min_capacity": "2",
            "max_capacity": "6",
            "target_cpu_utilization": "55",
        }
    )

    assert (request.cpu, request.memory, request.desired_count) == (1024, 2048, 3)
    assert request.environment_variables[0].to_ecs() == {"name": "NODE_ENV", "value": "production"}
    assert request.secrets[0].value_from.endswith("parameter/key")
    assert request.mount_points[0].to_ecs() == {
        "sourceVolume": "data",
        "containerPath": "/data",
        "readOnly": False,
    }
    assert request.volumes[0].to_ecs() == {
        "name": "data",
        "efsVolumeConfiguration": {"fileSystemId": "fs-1"},
    }
    assert request.autoscaling.enabled is True
    assert request.autoscaling.min_capacity == 2
    assert request.autoscaling.max_capacity == 6
    assert request.autoscaling.target_cpu_utilization == 55
    assert request.autoscaling.target_memory_utilization == 80


def test_empty_array_is_kept_as_explicit_clear(base_params):
    request = parse_request({**base_params, "environment_variables": "[]", "secrets": []})

    assert request.environment_variables == []
    assert request.secrets == []


def test_blank_target_utilization_disables_that_metric(base_params):
    request = parse_request(
        {**base_params, "enable_autoscaling": True, "target_memory_utilization": ""}
    )

    assert request.autoscaling.target_cpu_utilization == 70
    assert request.autoscaling.target_memory_utilization is None


@pytest.mark.parametrize(
    "missing", ["image", "cluster", "service", "task_family", "container_name"]
)
def test_required_parameters(base_params, missing):
    params = {**base_params, missing: ""}

    with pytest.raises(ValidationError) as exc_info:
        parse_request(params)

    assert exc_info.value.field == missing
    assert exc_info.value.stage == "parse"


def test_unknown_parameter_is_rejected(base_params):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "memory_reservation": "128"})

    assert exc_info.value.field == "memory_reservation"


def test_unknown_item_key_is_rejected(base_params):
    env = '[{"name": "A", "value": "1", "type": "plain"}]'

    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "environment_variables": env})

    assert exc_info.value.field == "environment_variables[0].type"
    assert "unknown key" in str(exc_info.value)


def test_missing_item_key_is_rejected(base_params):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "secrets": '[{"name": "API_KEY"}]'})

    assert exc_info.value.field == "secrets[0].valueFrom"


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("{not json", "invalid JSON"),
        ('{"name": "A", "value": "1"}', "must be a JSON array"),
        ('["A=1"]', "must be a JSON object"),
    ],
)
def test_malformed_json_arrays(base_params, value, message):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "environment_variables": value})

    assert exc_info.value.field.startswith("environment_variables")
    assert message in str(exc_info.value)


def test_duplicate_environment_names_are_rejected(base_params):
    env = [{"name": "A", "value": "1"}, {"name": "A", "value": "2"}]

    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "environment_variables": env})

    assert exc_info.value.field == "environment_variables"
    assert "duplicate name 'A'" in str(exc_info.value)


def test_volume_needs_exactly_one_source(base_params):
    volumes = [
        {
            "name": "data",
            "host": {"sourcePath": "/data"},
            "efsVolumeConfiguration": {"fileSystemId": "fs-1"},
        }
    ]

    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "volumes": volumes})

    assert exc_info.value.field == "volumes[0]"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("cpu", "1.5"),
        ("cpu", "lots"),
        ("memory", "128"),
        ("memory", "40000"),
        ("desired_count", "-1"),
        ("cpu", True),
    ],
)
def test_numeric_ranges(base_params, name, value):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, name: value})

    assert exc_info.value.field == name


def test_capacity_bounds_are_checked(base_params):
    with pytest.raises(ValidationError) as exc_info:
        parse_request(
            {**base_params, "enable_autoscaling": True, "min_capacity": 5, "max_capacity": 2}
        )

    assert exc_info.value.field == "autoscaling"
    assert "exceeds max_capacity" in str(exc_info.value)


def test_target_utilization_range(base_params):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "target_cpu_utilization": "150"})

    assert exc_info.value.field == "autoscaling.target_cpu_utilization"


@pytest.mark.parametrize("value", ["300", "768", "8192"])
def test_cpu_must_be_a_task_size(base_params, value):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "cpu": value})

    assert exc_info.value.field == "cpu"


@pytest.mark.parametrize("value", ["0.5", "0"])
def test_target_utilization_below_one_percent_is_rejected(base_params, value):
    with pytest.raises(ValidationError) as exc_info:
        parse_request({**base_params, "target_memory_utilization": value})

    assert exc_info.value.field == "autoscaling.target_memory_utilization"
