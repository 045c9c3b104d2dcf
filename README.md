# scancore

Pieces for tools that work over the IPv4 address space: deciding which
addresses may be probed, indexing the eligible addresses, producing
reproducible random words, and handling and filtering the result records
that come back.

## Installation

```
pip install scancore
```

For running the test suite:

```
pip install "scancore[test]"
```

## What is inside

- `scancore.constraint.Constraint` stores one integer value for every IPv4
  address, assigned by prefix. `set(prefix, length, value)` paints a
  prefix, replacing anything set earlier inside it. `lookup_ip` reads the
  value of one address. `count_ips` counts the addresses holding a value.
  `lookup_index(index, value)` returns the address at a zero-based position
  among those holding the value. `paint_value` precomputes the tables for
  that lookup; `lookup_index` calls it itself when needed.
- `scancore.blocklist.Blocklist` builds the set of addresses that may be
  scanned from an allow-list file, a block-list file and lists of entries.
  An entry is a dotted address, a CIDR block or a hostname, which is
  resolved. In files, text after `#` is ignored. With no allow list every
  address starts allowed. `0.0.0.0` is always blocked. Methods:
  `is_allowed`, `count_allowed`, `count_not_allowed`, `lookup_index`,
  `ip_to_index`, `allowlist_prefix`, `blocklist_prefix`,
  `allowlisted_cidrs` and `blocklisted_cidrs` (lists of `CidrEntry`).
  `BlocklistError` is raised when no address is left to scan.
- `scancore.aesrand.AesRand` yields 64-bit words by repeatedly encrypting
  the previous block with AES-128. `AesRand.from_seed(seed)` gives the same
  sequence for the same seed. `AesRand.from_random()` keys it from the
  system's secure random source.
- `scancore.pbm.PagedBitmap` is a sparse set of 32-bit values, with `set`,
  `check`, `in`, and `load_from_file` for one IPv4 address per line.
- `scancore.fieldset` holds typed result records (`FieldSet`, `Field`,
  `FieldType`), the fields a probe offers (`FieldDef`, `FieldDefSet`), and
  translations that select and reorder fields (`generate_translation`,
  `generate_full_translation`, `translate_fieldset`). `sanitize_utf8`
  replaces each invalid byte with U+FFFD.
- `scancore.expression` builds filter trees (`make_op_node`,
  `make_field_node`, `make_string_node`, `make_int_node`) and evaluates
  them against a `FieldSet` with `evaluate_expression`.
- `scancore.redisio` parses `tcp://server:port/list-name` and
  `local:///path/to/socket/list-name` connection strings (`parse_connstr`),
  connects (`connect`, `connect_from_conf`), and wraps the client in
  `RedisStore`. It offers configuration keys and pushing and pulling
  fixed-size binary items and strings on lists and sets.
- `scancore.logger` writes levelled, timestamped lines to a stream (and
  optionally syslog). `init_logging` configures it, and `log_fatal` logs
  and then raises `FatalError`.
- `scancore.util` has argument helpers (`check_range`, `enforce_range`,
  `parse_max_hosts`, `parse_mac`, `split_string`), formatting helpers
  (`time_string`, `number_string`, `fprintw`) and process helpers
  (`file_exists`, `drop_privs`, `set_cpu`).
- `scancore.csvindex` finds and extracts columns of simple comma-separated
  lines. `scancore.randbytes.random_bytes` returns secure random bytes.

## Examples

```python
from scancore.blocklist import Blocklist

bl = Blocklist(
    allowlist_entries=["192.0.2.0/24"],
    blocklist_entries=["192.0.2.128/25"],
)
print(bl.count_allowed())          # 128
print(bl.is_allowed("192.0.2.10")) # True
print(bl.lookup_index(0))          # 3221225984, i.e. 192.0.2.0
```

```python
from ipaddress import IPv4Address
from scancore.constraint import Constraint

c = Constraint(0)
c.set(int(IPv4Address("10.0.0.0")), 8, 1)
print(c.count_ips(1))              # 16777216
print(IPv4Address(c.lookup_index(5, 1)))  # 10.0.0.5
```

```python
from scancore.expression import Operation, evaluate_expression, make_field_node, make_int_node, make_op_node
from scancore.fieldset import FieldSet

root = make_op_node(Operation.GT)
root.left = make_field_node("sport")
root.left.index = 0
root.right = make_int_node(1024)

fields = FieldSet()
fields.add_uint64("sport", 8080)
print(evaluate_expression(root, fields))  # True
```

## What it does not do

scancore is a library only. It has no command-line program, sends no
packets and receives none. It does not choose an order in which to visit
the allowed addresses. `Blocklist.lookup_index` maps an index to an
address, and the caller decides which indices to visit.