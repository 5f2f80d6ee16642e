# rudolph

This package is the data layer of a sync server for the Santa binary
authorization agent. It stores rules, sensor check-ins, sync state and machine
configuration as rows in a single DynamoDB-style table. Each row has a
partition key (`PK`) and a sort key (`SK`).

The package has no runtime dependencies. It does not talk to a database itself.
Every function that reads or writes data takes a client object that you supply.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The client interface

A client needs only the methods that the functions you call will use:

| Method | Called with | Expected to return |
| --- | --- | --- |
| `get_item(key, consistent_read)` | a `PrimaryKey` and a bool | a mapping, with the row under `"Item"` (empty or missing when there is no row) |
| `put_item(item)` | a record dataclass | anything; the value is ignored |
| `update_item(key, item)` | a `PrimaryKey` and a record dataclass holding the fields to set | a mapping; configuration updates read the new row from `"Attributes"` |
| `delete_item(key)` | a `PrimaryKey` | anything; the value is ignored |
| `query(query_input)` | a dict of DynamoDB query parameters | a mapping with `"Items"` and, optionally, `"LastEvaluatedKey"` |
| `scan(scan_input)` | a dict of DynamoDB scan parameters | a mapping with `"LastEvaluatedKey"` when there are more pages |

Rows use DynamoDB's attribute-value form, for example
`{"PK": {"S": "GlobalRules"}, "Policy": {"N": "1"}}`. Records are passed to
`put_item` and `update_item` as dataclasses. To turn a record into this form,
use `rudolph.records.to_item`. To turn an item back into a record, use
`rudolph.records.from_item`.

A time provider is any object with a `now()` method that returns a
`datetime`. A naive `datetime` is treated as UTC.

## Modules

- `rudolph.types` holds the enums `ClientMode`, `DataType`, `Policy` and
  `RuleType`, and converts each one to and from its text form and its
  attribute form, for example `policy_from_text` and `rule_type_to_attribute`.
  `validate_machine_id` and `validate_sha256` raise `ValueError` when the
  input is malformed.
- `rudolph.records` holds `PrimaryKey`, `SantaRule`, `rule_sort_key`,
  `format_rfc3339`, `unix_timestamp`, `to_item` and `from_item`.
- `rudolph.response` builds JSON API responses with `api_response` and
  `ErrorResponse`. When a body cannot be encoded, `api_response` raises
  `SerializationError`, and the error carries a 500 response.
- `rudolph.request` reads and checks the `machine_id` path parameter with
  `get_machine_id`. When the parameter is missing or invalid, it raises
  `InvalidRequestError`, and the error carries a 400 response.
- `rudolph.scan` provides `ScanService.scan_all`, which walks every page of a
  scan.
- `rudolph.feedrules` manages the time-ordered feed of rule changes with
  `construct_feed_rule`, `feed_sync_start_key` and `get_paginated_feed_rules`.
- `rudolph.globalrules` reads the rules that apply to every machine with
  `get_global_rule_by_sort_key`, `get_global_rule_by_sha_type`,
  `get_paginated_global_rules` and `ping_database`.
- `rudolph.machinerules` adds, reads, updates and marks for removal the rules
  that apply to one machine, through its functions and through
  `MachineRulesService`.
- `rudolph.sensordata` and `rudolph.sensordata_search` hold the preflight
  check-in data. `SensorDataFinder` looks up machine IDs by prefix or by
  serial number.
- `rudolph.syncstate` tracks each machine's progress through preflight, rule
  download and postflight.
- The configuration modules are `rudolph.config_model`, `config_cache`,
  `config_fetch`, `config_set`, `config_update`, `config_delete` and
  `config_service`. A machine's own configuration comes first. If there is
  none, the global configuration applies. If there is no global
  configuration either, `universal_default_config()` applies. Setting or
  updating the global configuration to lockdown mode raises `ValueError`.

## Examples

```python
from rudolph.types import RuleType, validate_sha256
from rudolph.records import rule_sort_key

sha = "850524a7218b2370b43f56b0e62ad6a92d8d6e1c5e9efbc578a68284d9da3545"
validate_sha256(sha)
print(rule_sort_key(sha, RuleType.BINARY))   # Binary#850524a7...
```

```python
from rudolph.config_service import get_machine_configuration_service

service = get_machine_configuration_service(client, time_provider)
config = service.get_intended_config("AAAAAAAA-0000-0000-0000-000000000001")
print(config.client_mode, config.batch_size)
```

## What this package does not do

- It provides no HTTP handlers, no server and no command-line tool.
  `rudolph.request` and `rudolph.response` only help a handler that you write
  yourself.
- It ships no database adapter. You supply the client described above.
- It can read global rules but cannot add, update or remove them.
  `construct_feed_rule` builds feed rows but does not write them. Nothing here
  performs transactional writes.