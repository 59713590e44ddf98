"""Firewall backends that put banned IPs into ipsets or nftables sets."""

from __future__ import annotations

import logging
import os
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Callable

from gerberos.errors import GerberosError
from gerberos.executor import CommandError, CommandNotFoundError

logger = logging.getLogger("gerberos")

DEFAULT_CHAIN_NAME = "gerberos"
DEFAULT_TABLE4_NAME = "gerberos4"
DEFAULT_TABLE6_NAME = "gerberos6"


class BackendError(GerberosError):
    """A backend failed to set up, change or tear down its firewall state."""


def _seconds(duration: timedelta | float) -> int:
    if isinstance(duration, timedelta):
        return int(duration.total_seconds())
    return int(duration)


class Backend(ABC):
    """Base class of firewall backends, bound to a runner."""

    def __init__(self, runner: Any) -> None:
        self.runner = runner

    @property
    def _executor(self) -> Any:
        return self.runner.executor

    @property
    def _save_file_path(self) -> str:
        return self.runner.configuration.save_file_path or ""

    @abstractmethod
    def initialize(self) -> None:
        """Check privileges and prepare the firewall."""

    @abstractmethod
    def ban(self, ip: str, ipv6: bool, duration: timedelta | float) -> None:
        """Block ``ip`` for ``duration``."""

    @abstractmethod
    def unban(self, ip: str, ipv6: bool) -> None:
        """Lift the block on ``ip``."""

    @abstractmethod
    def finalize(self) -> None:
        """Persist state if configured and clean the firewall up."""

    @abstractmethod
    def create_tables(self) -> None:
        """Create the sets, tables and rules the backend uses."""

    @abstractmethod
    def delete_tables(self) -> None:
        """Remove the sets, tables and rules the backend uses."""

    @abstractmethod
    def save_to_file(self) -> None:
        """Write the banned IPs to the save file."""

    @abstractmethod
    def restore_from_file(self) -> None:
        """Load the banned IPs from the save file."""


class IpsetBackend(Backend):
    """Bans through ipset sets referenced from ip(6)tables chains."""

    settle_delay = 0.25

    def __init__(self, runner: Any) -> None:
        super().__init__(runner)
        self.chain_name = DEFAULT_CHAIN_NAME
        self.ipset4_name = DEFAULT_TABLE4_NAME
        self.ipset6_name = DEFAULT_TABLE6_NAME

    def _settle(self) -> None:
        # Workaround for potential kernel lock problems
        time.sleep(self.settle_delay)

    def _require(self, message: str, name: str, *args: str) -> None:
        try:
            self._executor.execute(name, *args)
        except CommandError as exc:
            raise BackendError(f"{message}: {exc.output}") from exc

    def _tolerate(self, limit: int, message: str, name: str, *args: str) -> None:
        try:
            self._executor.execute(name, *args)
        except CommandError as exc:
            if exc.exit_code > limit:
                raise BackendError(f"{message}: {exc.output}") from exc

    def create_tables(self) -> None:
        try:
            self._create_ipsets()
        except BackendError as exc:
            raise BackendError(f"failed to create ipsets: {exc}") from exc
        try:
            self._create_iptables_entries()
        except BackendError as exc:
            raise BackendError(f"failed to create ip(6)tables entries: {exc}") from exc

    def delete_tables(self) -> None:
        chain, set4, set6 = self.chain_name, self.ipset4_name, self.ipset6_name
        for tool, ipset in (("iptables", set4), ("ip6tables", set6)):
            self._tolerate(
                2,
                f'failed to delete {tool} entry for set "{ipset}"',
                tool, "-D", chain, "-j", "DROP", "-m", "set", "--match-set", ipset, "src",
            )
            self._tolerate(
                2,
                f'failed to delete {tool} entry for chain "{chain}"',
                tool, "-D", "INPUT", "-j", chain,
            )
            self._tolerate(2, f'failed to delete {tool} chain "{chain}"', tool, "-X", chain)
        for ipset in (set4, set6):
            self._settle()
            self._tolerate(1, f'failed to destroy ipset "{ipset}"', "ipset", "destroy", ipset)

    def _create_ipsets(self) -> None:
        self._settle()
        self._require(
            f'failed to create ipset "{self.ipset4_name}"',
            "ipset", "create", self.ipset4_name, "hash:ip", "timeout", "0",
        )
        self._settle()
        self._require(
            f'failed to create ipset "{self.ipset6_name}"',
            "ipset", "create", self.ipset6_name, "hash:ip", "family", "inet6", "timeout", "0",
        )

    def _create_iptables_entries(self) -> None:
        chain = self.chain_name
        for tool, ipset in (("iptables", self.ipset4_name), ("ip6tables", self.ipset6_name)):
            self._require(f'failed to create {tool} chain "{chain}"', tool, "-N", chain)
            self._require(
                f'failed to create {tool} entry for set "{ipset}"',
                tool, "-I", chain, "-j", "DROP", "-m", "set", "--match-set", ipset, "src",
            )
            self._require(
                f'failed to create {tool} entry for chain "{chain}"',
                tool, "-I", "INPUT", "-j", chain,
            )

    def save_to_file(self) -> None:
        with open(self._save_file_path, "wb") as stream:
            self._executor.execute_with_std(None, stream, "ipset", "save")
            # Always ensure the file reaches the disk so bans survive a shutdown.
            stream.flush()
            os.fsync(stream.fileno())

    def restore_from_file(self) -> None:
        path = self._save_file_path
        stream = open(path, "rb")
        try:
            self._executor.execute_with_std(stream, None, "ipset", "restore")
        finally:
            stream.close()
            try:
                os.remove(path)
            except OSError as exc:
                logger.info("failed to delete save file: %s", exc)

    def _check_tool(self, name: str, *args: str) -> None:
        try:
            self._executor.execute(name, *args)
        except CommandNotFoundError as exc:
            raise BackendError(f"{name}: command not found") from exc
        except CommandError as exc:
            raise BackendError(f"{name}: insufficient privileges: {exc.output}") from exc

    def initialize(self) -> None:
        self.chain_name = DEFAULT_CHAIN_NAME
        self.ipset4_name = DEFAULT_TABLE4_NAME
        self.ipset6_name = DEFAULT_TABLE6_NAME

        self._check_tool("ipset", "list")
        self._check_tool("iptables", "-L", "-w")
        self._check_tool("ip6tables", "-L", "-w")

        if self.runner.configuration.disallow_init:
            return

        try:
            self.delete_tables()
        except BackendError as exc:
            raise BackendError(f"failed to delete ipsets and iptables entries: {exc}") from exc

        path = self._save_file_path
        if path:
            try:
                self.restore_from_file()
            except Exception:
                try:
                    self._create_ipsets()
                except BackendError as exc:
                    raise BackendError(f"failed to create ipsets: {exc}") from exc
            else:
                logger.info('restored ipsets from "%s"', path)
        else:
            logger.info("warning: not persisting ipsets")
            try:
                self._create_ipsets()
            except BackendError as exc:
                raise BackendError(f"failed to create ipsets: {exc}") from exc

        try:
            self._create_iptables_entries()
        except BackendError as exc:
            raise BackendError(f"failed to create ip(6)tables entries: {exc}") from exc

    def ban(self, ip: str, ipv6: bool, duration: timedelta | float) -> None:
        ipset = self.ipset6_name if ipv6 else self.ipset4_name
        try:
            self._executor.execute("ipset", "test", ipset, ip)
        except CommandError:
            self._executor.execute(
                "ipset", "add", ipset, ip, "timeout", str(_seconds(duration))
            )

    def unban(self, ip: str, ipv6: bool) -> None:
        ipset = self.ipset6_name if ipv6 else self.ipset4_name
        self._executor.execute("ipset", "del", ipset, ip)

    def finalize(self) -> None:
        path = self._save_file_path
        if path:
            try:
                self.save_to_file()
            except Exception as exc:
                raise BackendError(f'failed to save ipsets to "{path}": {exc}') from exc

        if self.runner.configuration.disallow_clear:
            return

        try:
            self.delete_tables()
        except BackendError as exc:
            raise BackendError(f"failed to delete ipsets and ip(6)tables entries: {exc}") from exc


class NftBackend(Backend):
    """Bans through nftables sets with per-element timeouts."""

    def __init__(self, runner: Any) -> None:
        super().__init__(runner)
        self.table4_name = DEFAULT_TABLE4_NAME
        self.table6_name = DEFAULT_TABLE6_NAME
        self.set4_name = "set4"
        self.set6_name = "set6"

    def _require(self, message: str, *args: str) -> None:
        try:
            self._executor.execute("nft", *args)
        except CommandError as exc:
            raise BackendError(f"{message}: {exc.output}") from exc

    def _family(self, ipv6: bool) -> tuple[str, str, str]:
        if ipv6:
            return "ip6", self.table6_name, self.set6_name
        return "ip", self.table4_name, self.set4_name

    def create_tables(self) -> None:
        t4, s4, t6, s6 = self.table4_name, self.set4_name, self.table6_name, self.set6_name
        self._require(f'failed to add table "{t4}"', "add", "table", "ip", t4)
        self._require(
            f'failed to add ip set "{t4}"',
            "add", "set", "ip", t4, s4, "{ type ipv4_addr; flags timeout; }",
        )
        self._require(
            "failed to add input chain",
            "add", "chain", "ip", t4, "INPUT",
            "{ type filter hook input priority 0; policy accept; }",
        )
        self._require("failed to flush input chain", "flush", "chain", "ip", t4, "INPUT")
        self._require(
            "failed to add rule",
            "add", "rule", "ip", t4, "INPUT", "ip", "saddr", "@" + s4, "reject",
        )
        self._require(f'failed to create ip6 table "{t6}"', "add", "table", "ip6", t6)
        self._require(
            f'failed to add ip set "{t6}"',
            "add", "set", "ip6", t6, s6, "{ type ipv6_addr; flags timeout; }",
        )
        self._require(
            "failed to add input chain",
            "add", "chain", "ip6", t6, "INPUT",
            "{ type filter hook input priority 0; policy accept; }",
        )
        self._require("failed to flush input chain", "flush", "chain", "ip6", t6, "INPUT")
        self._require(
            "failed to add rule",
            "add", "rule", "ip6", t6, "INPUT", "ip6", "saddr", "@" + s6, "reject",
        )

    def delete_tables(self) -> None:
        self._require(
            f'failed to delete table "{self.table4_name}"',
            "delete", "table", "ip", self.table4_name,
        )
        self._require(
            f'failed to delete table "{self.table6_name}"',
            "delete", "table", "ip6", self.table6_name,
        )

    def save_to_file(self) -> None:
        with open(self._save_file_path, "wb") as stream:
            self._executor.execute_with_std(
                None, stream, "nft", "list", "set", "ip", self.table4_name, self.set4_name
            )
            self._executor.execute_with_std(
                None, stream, "nft", "list", "set", "ip6", self.table6_name, self.set6_name
            )
            # Always ensure the file reaches the disk so bans survive a shutdown.
            stream.flush()
            os.fsync(stream.fileno())

    def restore_from_file(self) -> None:
        self._executor.execute("nft", "-f", self._save_file_path)

    def initialize(self) -> None:
        self.table4_name = DEFAULT_TABLE4_NAME
        self.table6_name = DEFAULT_TABLE6_NAME
        self.set4_name = "set4"
        self.set6_name = "set6"

        try:
            self._executor.execute("nft", "list", "ruleset")
        except CommandNotFoundError as exc:
            raise BackendError("nft: command not found") from exc
        except CommandError as exc:
            raise BackendError(f"nft: insufficient privileges: {exc.output}") from exc

        if self.runner.configuration.disallow_init:
            return

        try:
            self.create_tables()
        except BackendError as exc:
            raise BackendError(f"failed to create tables: {exc}") from exc

        path = self._save_file_path
        if path:
            try:
                self.restore_from_file()
            except Exception as exc:
                logger.info('failed to restore sets from "%s": %s', path, exc)
            else:
                logger.info('restored sets from "%s"', path)
        else:
            logger.info("warning: not persisting sets")

    def ban(self, ip: str, ipv6: bool, duration: timedelta | float) -> None:
        family, table, set_name = self._family(ipv6)
        element = f"{{ {ip} timeout {_seconds(duration)}s }}"
        try:
            self._executor.execute("nft", "add", "element", family, table, set_name, element)
        except CommandError as exc:
            if exc.exit_code == 1:
                # The IP is most likely in the set already; older nft reports this as an error.
                return
            raise BackendError(
                f'failed to add element to set "{set_name}": {exc.output}'
            ) from exc

    def unban(self, ip: str, ipv6: bool) -> None:
        family, table, set_name = self._family(ipv6)
        self._require(
            f'failed to delete element from set "{set_name}"',
            "delete", "element", family, table, set_name, f"{{ {ip} }}",
        )

    def finalize(self) -> None:
        path = self._save_file_path
        if path:
            try:
                self.save_to_file()
            except Exception as exc:
                raise BackendError(f'failed to save sets to "{path}": {exc}') from exc

        if self.runner.configuration.disallow_clear:
            return

        try:
            self.delete_tables()
        except BackendError as exc:
            raise BackendError(f"failed to delete tables: {exc}") from exc


class TestBackend(Backend):
    """Backend that does nothing, or raises the error set for an operation."""

    __test__ = False

    def __init__(self, runner: Any) -> None:
        super().__init__(runner)
        self.initialize_error: Exception | None = None
        self.ban_error: Exception | None = None
        self.unban_error: Exception | None = None
        self.finalize_error: Exception | None = None
        self.create_tables_error: Exception | None = None
        self.delete_tables_error: Exception | None = None
        self.save_to_file_error: Exception | None = None
        self.restore_from_file_error: Exception | None = None

    @staticmethod
    def _raise(error: Exception | None) -> None:
        if error is not None:
            raise error

    def initialize(self) -> None:
        self._raise(self.initialize_error)

    def ban(self, ip: str, ipv6: bool, duration: timedelta | float) -> None:
        self._raise(self.ban_error)

    def unban(self, ip: str, ipv6: bool) -> None:
        self._raise(self.unban_error)

    def finalize(self) -> None:
        self._raise(self.finalize_error)

    def create_tables(self) -> None:
        self._raise(self.create_tables_error)

    def delete_tables(self) -> None:
        self._raise(self.delete_tables_error)

    def save_to_file(self) -> None:
        self._raise(self.save_to_file_error)

    def restore_from_file(self) -> None:
        self._raise(self.restore_from_file_error)


_BACKENDS: dict[str, Callable[[Any], Backend]] = {
    "ipset": IpsetBackend,
    "nft": NftBackend,
    "test": TestBackend,
}


def register_backend(name: str, factory: Callable[[Any], Backend]) -> None:
    """Make ``factory`` available under ``name``."""
    _BACKENDS[name] = factory


def create_backend(name: str, runner: Any) -> Backend:
    """Create the backend called ``name`` for ``runner``."""
    try:
        factory = _BACKENDS[name]
    except KeyError:
        raise BackendError(f"unknown backend: {name}") from None
    return factory(runner)