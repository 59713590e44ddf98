# gerberos

gerberos is a library of building blocks for banning IP addresses on a Linux
host. It manages ban lists through `ipset`/`iptables` or `nftables` and
provides the helpers around them: duration parsing, counting repeated hits
per address, linking identifiers to addresses and describing a recognised
log line.

Changing the firewall needs the matching privileges and the `ipset`,
`iptables`, `ip6tables` or `nft` tools on the host.

## Installation

```
pip install .
```

The tests need pytest:

```
pip install ".[test]"
pytest
```

## Modules

### `gerberos.durations`

`parse_duration(text)` turns strings such as `"1h"`, `"1h30m"`, `"250ms"` or
`"-1.5s"` into a `datetime.timedelta`. The units are `ns`, `us` (or `µs`),
`ms`, `s`, `m` and `h`; every number needs a unit, except a plain `"0"`.
Malformed input raises `ValueError`.

### `gerberos.occurrences`

`Occurrences(interval, count)` tracks hits per host. `add(host)` records a
hit and returns `True` once the last `count` hits of that host lie within
`interval`; the host's history is then cleared. `interval` is a `timedelta`
or a number of seconds.

### `gerberos.aggregate`

`Aggregate(interval, regexps)` is a thread-safe mapping from identifiers to
`ipaddress` objects, holding an interval and a list of compiled patterns.
`register(identifier, ip)` stores an entry, `pop(identifier)` and
`expire(identifier)` remove and return it (or `None`). It supports `in` and
`len()`.

### `gerberos.match`

`Match` is a frozen dataclass with `line`, `ip`, `ipv6`, `regexp` and `time`
(the current local time by default).

```python
>>> from datetime import datetime, timezone
>>> from gerberos.match import Match
>>> m = Match("line", "192.0.2.1", False, "regexp", datetime(2024, 1, 1, tzinfo=timezone.utc))
>>> m.string_simple()
'time = 2024-01-01T00:00:00Z, IP = "192.0.2.1", IPv4'
>>> m.string_extended()
'time = 2024-01-01T00:00:00Z, IP = "192.0.2.1", IPv4, line = "line", regexp = "regexp"'
```

`str(m)` gives the simple form.

### `gerberos.executor`

`Executor.execute(name, *args)` runs a command and returns its combined
stdout and stderr. `Executor.execute_with_std(stdin, stdout, name, *args)`
feeds `stdin` to the command, writes its stdout to `stdout` and returns only
its stderr; either stream may be `None`. A non-zero exit raises
`CommandError` with `output` and `exit_code`; a command that cannot be run
at all has `exit_code == -1`, and a missing executable raises
`CommandNotFoundError`.

`FaultyExecutor(output, exit_code, error, name, *args)` fakes the outcome of
exactly one command line and runs every other command normally, which is
handy for testing failure paths.

### `gerberos.backends`

`create_backend(name, runner)` builds one of `"ipset"` (`IpsetBackend`),
`"nft"` (`NftBackend`) or `"test"` (`TestBackend`, which does nothing unless
an error is set on it, such as `ban_error`). `register_backend(name, factory)`
adds more. An unknown name raises `BackendError`.

The `runner` may be any object with an `executor` (an `Executor`) and a
`configuration` with `save_file_path`, `disallow_init` and `disallow_clear`.
Every backend offers `initialize()`, `ban(ip, ipv6, duration)`,
`unban(ip, ipv6)`, `finalize()`, `create_tables()`, `delete_tables()`,
`save_to_file()` and `restore_from_file()`. With a save file set, `finalize()`
saves the ban lists and `initialize()` restores them; the ipset backend
deletes the save file after restoring. Failures raise `BackendError`.

```python
from types import SimpleNamespace

from gerberos.backends import create_backend
from gerberos.durations import parse_duration
from gerberos.executor import Executor

runner = SimpleNamespace(
    executor=Executor(),
    configuration=SimpleNamespace(
        save_file_path="/var/lib/gerberos/save",
        disallow_init=False,
        disallow_clear=False,
    ),
)
backend = create_backend("nft", runner)
backend.initialize()
try:
    backend.ban("203.0.113.7", False, parse_duration("24h"))
finally:
    backend.finalize()
```

### `gerberos.errors`

All errors derive from `GerberosError`. `RuleError` and its subclasses
(`MissingSourceError`, `UnknownActionError`, `InvalidIntervalParameterError`
and the like) describe invalid settings, `MatchError` a line that could not
be matched and `FaultError` an injected fault.

## What the package does not do

There is no command-line program and no service: nothing here reads a
configuration file, follows log files, the journal or process output, turns
lines into `Match` objects or decides when to ban. Those steps are left to
the code that uses these building blocks.