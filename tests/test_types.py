import pytest

from rudolph.types import (
    ClientMode,
    DataType,
    Policy,
    RuleType,
    client_mode_from_text,
    client_mode_to_text,
    data_type_from_attribute,
    data_type_from_text,
    data_type_to_attribute,
    data_type_to_text,
    policy_from_attribute,
    policy_from_text,
    policy_to_attribute,
    policy_to_text,
    rule_type_from_attribute,
    rule_type_from_text,
    rule_type_to_attribute,
    rule_type_to_text,
    validate_machine_id,
    validate_sha256,
)

# ---- DataType ----


@pytest.mark.parametrize(
    "value, expected",
    [
        ("SensorData", "SENSORDATA"),
        ("SyncState", "SYNCSTATE"),
        ("RulesFeed", "RULESFEED"),
        ("MachineConfig", "MACHINECONFIG"),
    ],
)
def test_data_type_to_text(value, expected):
    assert data_type_to_text(value) == expected


@pytest.mark.parametrize("value", ["SensorDatas", "SYNCSTATE", "RULESFEED", "MACHINECONFIGS"])
def test_data_type_to_text_failure(value):
    with pytest.raises(ValueError, match="unknown data_type"):
        data_type_to_text(value)


@pytest.mark.parametrize(
    "text, expected",
    [
        (b"SENSORDATA", DataType.SENSOR_DATA),
        (b"SENSOR_DATA", DataType.SENSOR_DATA),
        (b"SYNCSTATE", DataType.SYNC_STATE),
        (b"SYNC_STATE", DataType.SYNC_STATE),
        (b"RULESFEED", DataType.RULES_FEED),
        (b"RULES_FEED", DataType.RULES_FEED),
        (b"MACHINECONFIG", DataType.GLOBAL_CONFIG),
        (b"MACHINE_CONFIG", DataType.GLOBAL_CONFIG),
    ],
)
def test_data_type_from_text(text, expected):
    assert data_type_from_text(text) == expected


@pytest.mark.parametrize("text", ["SENSORDATAS", "RULESFEEDS", "SYNCSTATESS", "MACHINECONFIGS"])
def test_data_type_from_text_failure(text):
    with pytest.raises(ValueError, match="unknown data_type value"):
        data_type_from_text(text)


@pytest.mark.parametrize(
    "value, expected",
    [
        (DataType.SENSOR_DATA, {"S": "SensorData"}),
        (DataType.SYNC_STATE, {"S": "SyncState"}),
        (DataType.MACHINE_CONFIG, {"S": "MachineConfig"}),
    ],
)
def test_data_type_to_attribute(value, expected):
    assert data_type_to_attribute(value) == expected


def test_data_type_to_attribute_failure_message():
    with pytest.raises(ValueError) as excinfo:
        data_type_to_attribute("MachineConfigs")
    assert str(excinfo.value) == 'unknown data_type value "MachineConfigs"'


@pytest.mark.parametrize("value", list(DataType))
def test_data_type_attribute_round_trip(value):
    assert data_type_from_attribute(data_type_to_attribute(value)) == value


@pytest.mark.parametrize(
    "number, expected",
    [("1", DataType.SENSOR_DATA), ("2", DataType.SYNC_STATE), ("3", DataType.MACHINE_CONFIG)],
)
def test_data_type_from_number_attribute(number, expected):
    assert data_type_from_attribute({"N": number}) == expected


# ---- ClientMode ----


@pytest.mark.parametrize("value, expected", [(1, "MONITOR"), (2, "LOCKDOWN")])
def test_client_mode_to_text(value, expected):
    assert client_mode_to_text(value) == expected


def test_client_mode_to_text_error():
    with pytest.raises(ValueError) as excinfo:
        client_mode_to_text(3)
    assert str(excinfo.value) == "unknown client_mode 3"


@pytest.mark.parametrize("text, expected", [(b"MONITOR", ClientMode(1)), (b"LOCKDOWN", ClientMode(2))])
def test_client_mode_from_text(text, expected):
    assert client_mode_from_text(text) == expected


def test_client_mode_from_text_error():
    with pytest.raises(ValueError, match="unknown client_mode value"):
        client_mode_from_text("NOPE")


def test_client_mode_from_text_error_message():
    with pytest.raises(ValueError) as excinfo:
        client_mode_from_text("MONITORS")
    assert str(excinfo.value) == 'unknown client_mode value "MONITORS"'


# ---- RuleType ----


@pytest.mark.parametrize("value, expected", [(1, "BINARY"), (2, "CERTIFICATE")])
def test_rule_type_to_text(value, expected):
    assert rule_type_to_text(value) == expected


def test_rule_type_to_text_error():
    with pytest.raises(ValueError) as excinfo:
        rule_type_to_text(3)
    assert str(excinfo.value) == "unknown rule_type 3"


@pytest.mark.parametrize("text, expected", [(b"BINARY", RuleType(1)), (b"CERTIFICATE", RuleType(2))])
def test_rule_type_from_text(text, expected):
    assert rule_type_from_text(text) == expected


def test_rule_type_from_text_error():
    with pytest.raises(ValueError) as excinfo:
        rule_type_from_text(b"CERTIFICATES")
    assert str(excinfo.value) == 'unknown rule_type value "CERTIFICATES"'


@pytest.mark.parametrize(
    "number, expected",
    [("1", RuleType(1)), ("BINARY", RuleType(1)), ("2", RuleType(2)), ("CERTIFICATE", RuleType(2))],
)
def test_rule_type_from_attribute(number, expected):
    assert rule_type_from_attribute({"N": number}) == expected


def test_rule_type_from_attribute_error():
    with pytest.raises(ValueError) as excinfo:
        rule_type_from_attribute({"N": "CERTIFICATESS"})
    assert str(excinfo.value) == 'unknown rule_type value "CERTIFICATESS"'


@pytest.mark.parametrize("value, expected", [(1, {"N": "1"}), (2, {"N": "2"})])
def test_rule_type_to_attribute(value, expected):
    assert rule_type_to_attribute(value) == expected


def test_rule_type_to_attribute_error():
    with pytest.raises(ValueError) as excinfo:
        rule_type_to_attribute(3)
    assert str(excinfo.value) == 'unknown rule_type value "3"'


# ---- Policy ----

POLICY_NAMES = [
    (1, "ALLOWLIST"),
    (2, "BLOCKLIST"),
    (3, "SILENT_BLOCKLIST"),
    (4, "REMOVE"),
    (5, "ALLOWLIST_COMPILER"),
    (6, "ALLOWLIST_TRANSITIVE"),
]


@pytest.mark.parametrize("value, expected", POLICY_NAMES)
def test_policy_to_text(value, expected):
    assert policy_to_text(value) == expected


def test_policy_to_text_error():
    with pytest.raises(ValueError) as excinfo:
        policy_to_text(7)
    assert str(excinfo.value) == "unknown policy 7"


@pytest.mark.parametrize("expected, text", POLICY_NAMES)
def test_policy_from_text(expected, text):
    assert policy_from_text(text.encode()) == Policy(expected)


def test_policy_from_text_error():
    with pytest.raises(ValueError) as excinfo:
        policy_from_text(b"ALLOWLISTS")
    assert str(excinfo.value) == 'unknown policy value "ALLOWLISTS"'


@pytest.mark.parametrize("value", [1, 2, 3, 4, 5, 6])
def test_policy_to_attribute(value):
    assert policy_to_attribute(Policy(value)) == {"N": str(value)}


def test_policy_to_attribute_error():
    with pytest.raises(ValueError) as excinfo:
        policy_to_attribute(7)
    assert str(excinfo.value) == 'unknown policy value "7"'


@pytest.mark.parametrize("value", [1, 2, 3, 4, 5, 6])
def test_policy_from_attribute(value):
    assert policy_from_attribute({"N": str(value)}) == Policy(value)


@pytest.mark.parametrize("expected, text", POLICY_NAMES)
def test_policy_from_attribute_name(expected, text):
    assert policy_from_attribute({"N": text}) == Policy(expected)


def test_policy_from_attribute_error():
    with pytest.raises(ValueError) as excinfo:
        policy_from_attribute({"N": "7"})
    assert str(excinfo.value) == 'unknown policy value "7"'


# ---- Validators ----


def test_validate_machine_id_success():
    assert validate_machine_id("858CBF28-5EAA-58A3-A155-BB4E90C3B5DD") is None


def test_validate_machine_id_failure():
    with pytest.raises(ValueError, match="invalid machineID"):
        validate_machine_id("858CBF28-5EAA-58A3-A155-BB4E90C3B5DDS")


def test_validate_machine_id_rejects_lower_case():
    with pytest.raises(ValueError):
        validate_machine_id("858CBF28-5EAA-58A3-A155-BB4E90C3B5DD".lower())


def test_validate_sha256_success_lower_case():
    assert validate_sha256("850524a7218b2370b43f56b0e62ad6a92d8d6e1c5e9efbc578a68284d9da3545") is None


def test_validate_sha256_failure_mixed_case():
    with pytest.raises(ValueError, match="invalid sha256"):
        validate_sha256("850524a7218b2370b43f56b0e62ad6a92d8D6e1c5e9efbc578a68284d9da3545")


def test_validate_sha256_failure_too_long():
    with pytest.raises(ValueError, match="invalid sha256"):
        validate_sha256("850524a7218b2370b43f56b0e62ad6a92d8d6e1c5e9efbc578a68284d9Da35466")