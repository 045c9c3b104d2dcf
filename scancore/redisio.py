"""Configuration values and binary work queues kept in a Redis server."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

import redis

from scancore.logger import log_debug, log_error

REDIS_TIMEOUT = 2
DEFAULT_SOCKET_PATH = "/tmp/redis.sock"

_MASK32 = 0xFFFFFFFF
_TCP_CONNSTR = re.compile(r"tcp://([^:]+):(\d+)/(\S+)")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

Payload = Union[bytes, bytearray, memoryview]


class ConnectionType(enum.IntEnum):
    """How to reach the server."""

    TCP = 0
    LOCAL = 1


class RedisError(Exception):
    """Raised when a connection string is invalid or a command fails."""


@dataclass(frozen=True)
class RedisConfig:
    """Where the server is and which list to use."""

    type: ConnectionType
    path: Optional[str] = None
    server: Optional[str] = None
    port: int = 0
    list_name: Optional[str] = None


def parse_connstr(connstr: str) -> RedisConfig:
    """Parse tcp://server:port/list-name or local:///path/to/socket[/list-name]."""
    if connstr.startswith("tcp://"):
        match = _TCP_CONNSTR.match(connstr)
        if not match:
            raise RedisError(
                "unable to parse redis connection string. This should be of the form "
                "tcp://server:port/list-name for TCP connections. All fields are required."
            )
        port = int(match.group(2))
        if port > 0xFFFF:
            raise RedisError(f"port out of range in redis connection string: {port}")
        return RedisConfig(
            type=ConnectionType.TCP,
            server=match.group(1),
            port=port,
            list_name=match.group(3),
        )
    if connstr.startswith("local://"):
        rest = connstr[len("local://"):]
        path, slash, list_name = rest.rpartition("/")
        if not slash:
            raise RedisError("bad local url (missing a slash)")
        return RedisConfig(
            type=ConnectionType.LOCAL,
            path=path,
            list_name=list_name or None,
        )
    raise RedisError("redis connection string does not begin with tcp:// or local://")


def connect(connstr: Optional[str] = None) -> "RedisStore":
    """Connect using a connection string; without one, use the default local socket."""
    if connstr is None:
        conf = RedisConfig(type=ConnectionType.LOCAL, path=DEFAULT_SOCKET_PATH)
    else:
        try:
            conf = parse_connstr(connstr)
        except RedisError as exc:
            log_error("redis", "Could not connect: %s", exc)
            raise
    return connect_from_conf(conf)


def connect_from_conf(conf: RedisConfig) -> "RedisStore":
    """Connect to the server described by conf."""
    if conf.type == ConnectionType.LOCAL:
        client = redis.Redis(
            unix_socket_path=conf.path,
            socket_timeout=REDIS_TIMEOUT,
            socket_connect_timeout=REDIS_TIMEOUT,
        )
    else:
        client = redis.Redis(
            host=conf.server,
            port=conf.port,
            socket_timeout=REDIS_TIMEOUT,
            socket_connect_timeout=REDIS_TIMEOUT,
        )
    return RedisStore(client)


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _as_bytes(reply: Any) -> Optional[bytes]:
    if isinstance(reply, bytes):
        return reply
    if isinstance(reply, str):
        return reply.encode("utf-8")
    return None


class RedisStore:
    """Commands for configuration keys and fixed-size binary queues."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def _call(self, *args: Any) -> Any:
        try:
            return self.client.execute_command(*args)
        except redis.RedisError as exc:
            log_error("redis", "an error occurred when retrieving item from redis: %s", exc)
            raise RedisError(str(exc)) from exc

    def _pipeline(self, commands: List[tuple]) -> List[Any]:
        if not commands:
            return []
        try:
            pipe = self.client.pipeline(transaction=False)
            for command in commands:
                pipe.execute_command(*command)
            results = pipe.execute(raise_on_error=False)
        except redis.RedisError as exc:
            log_error("redis", "%s", exc)
            raise RedisError(str(exc)) from exc
        for result in results:
            if isinstance(result, Exception):
                log_error("redis", "%s", result)
                raise RedisError(str(result)) from result
        return list(results)

    def close(self) -> None:
        self.client.close()

    def flush(self) -> None:
        """Remove every key of the current database."""
        self._call("FLUSHDB")

    def exists(self, name: str) -> bool:
        return bool(self._call("EXISTS", name))

    def delete(self, name: str) -> None:
        self._call("DEL", name)

    def set(self, name: str, value: str) -> None:
        self._call("SET", name, value)

    def get(self, name: str) -> Optional[str]:
        """Return the value stored under name, or None if there is none."""
        reply = self._call("GET", name)
        if reply is None:
            return None
        if isinstance(reply, bytes):
            return reply.decode("utf-8", errors="replace")
        return str(reply)

    def get_uint32(self, key: str) -> int:
        """Read a key as an unsigned 32-bit integer, parsed from its leading digits."""
        value = self.get(key)
        if value is None:
            raise RedisError(f"no value stored for {key!r}")
        return _atoi(value) & _MASK32

    def set_uint32(self, key: str, value: int) -> None:
        if not 0 <= value <= _MASK32:
            raise ValueError(f"value is not an unsigned 32-bit integer: {value!r}")
        self.set(key, str(value))

    def list_size(self, name: str) -> int:
        return int(self._call("LLEN", name))

    def set_size(self, name: str) -> int:
        return int(self._call("SCARD", name))

    def _pull(self, queue: str, maxload: int, obj_size: int, cmd: str, size: int) -> List[bytes]:
        count = max(0, min(size, maxload))
        log_debug(
            "redis",
            "redis load called on %s. Transferring %d of %d elements to in-memory queue.",
            queue,
            count,
            size,
        )
        items = []
        for reply in self._pipeline([(cmd, queue)] * count):
            data = _as_bytes(reply)
            if data is None:
                log_error("redis", "unexpected reply type from redis")
                raise RedisError("unexpected reply type from redis")
            if len(data) != obj_size:
                log_error("redis", "response object length mismatch")
                raise RedisError("response object length mismatch")
            items.append(data)
        return items

    def lpull(self, queue: str, maxload: int, obj_size: int) -> List[bytes]:
        """Pop up to maxload items of obj_size bytes from the front of a list."""
        return self._pull(queue, maxload, obj_size, "LPOP", self.list_size(queue))

    def spull(self, queue: str, maxload: int, obj_size: int) -> List[bytes]:
        """Read up to maxload random members of obj_size bytes from a set."""
        return self._pull(queue, maxload, obj_size, "SRANDMEMBER", self.set_size(queue))

    def _pull_one(self, queue: str, cmd: str) -> Optional[bytes]:
        reply = self._call(cmd, queue)
        if reply is None:
            return None
        data = _as_bytes(reply)
        if data is None:
            raise RedisError("unexpected reply type from redis")
        return data

    def lpull_one(self, queue: str) -> Optional[bytes]:
        """Pop one item from the front of a list; None if the list is empty."""
        return self._pull_one(queue, "LPOP")

    def spull_one(self, queue: str) -> Optional[bytes]:
        """Read one random member of a set; None if the set is empty."""
        return self._pull_one(queue, "SRANDMEMBER")

    def _push(self, queue: str, items: Iterable[Payload], cmd: str) -> None:
        self._pipeline([(cmd, queue, bytes(item)) for item in items])

    def lpush(self, queue: str, items: Iterable[Payload]) -> None:
        self._push(queue, items, "LPUSH")

    def rpush(self, queue: str, items: Iterable[Payload]) -> None:
        self._push(queue, items, "RPUSH")

    def spush(self, queue: str, items: Iterable[Payload]) -> None:
        self._push(queue, items, "SADD")

    def lpush_one(self, queue: str, item: Payload) -> None:
        self._call("LPUSH", queue, bytes(item))

    def rpush_one(self, queue: str, item: Payload) -> None:
        self._call("RPUSH", queue, bytes(item))

    def spush_one(self, queue: str, item: Payload) -> None:
        self._call("SADD", queue, bytes(item))

    def _push_strings(self, queue: str, strings: Iterable[str], cmd: str) -> None:
        self._pipeline([(cmd, queue, text) for text in strings])

    def lpush_strings(self, queue: str, strings: Iterable[str]) -> None:
        self._push_strings(queue, strings, "LPUSH")

    def rpush_strings(self, queue: str, strings: Iterable[str]) -> None:
        self._push_strings(queue, strings, "RPUSH")

    def spush_strings(self, queue: str, strings: Iterable[str]) -> None:
        self._push_strings(queue, strings, "SADD")