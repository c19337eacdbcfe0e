# Copyright © 2025-2030, All Rights Reserved
# Ashutosh Sinha | Email: ajsinha@gmail.com
#
# Legal Notice: This module and the associated software architecture are proprietary
# and confidential. Unauthorized copying, distribution, modification, or use is
# strictly prohibited without explicit written permission from the copyright holder.
#
# Patent Pending: Certain architectural patterns and implementations described in
# this module may be subject to patent applications.

"""
Redis Clients - client factories, key namespacing and bulk key operations
"""

import atexit
import copy
import inspect
import logging
import uuid
import urllib.parse
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

import redis
from redis.client import Pipeline, PubSub
from redis.connection import URL_QUERY_ARGUMENT_PARSERS


logger = logging.getLogger(__name__)


class RedisClientsException(Exception):
    """Exception raised for invalid usage of the client helpers."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class MissingPatternsError(RedisClientsException):
    """Raised when count is called without any key pattern."""
    def __init__(self, message: str = 'Missing Count Patterns'):
        super().__init__(message, status_code=400)


class PubSubClients(NamedTuple):
    """Publisher and subscriber pair shared by a RedisClients instance."""
    publisher: redis.Redis
    subscriber: PubSub


# Query parameters a connection string may carry: db plus redis.Redis keyword arguments
URL_QUERY_ARGUMENTS = frozenset(URL_QUERY_ARGUMENT_PARSERS) | frozenset(
    name for name in inspect.signature(redis.Redis.__init__).parameters if name != 'self'
)

# Counts keys matching ARGV[1] server side
COUNT_SCRIPT = 'return #redis.pcall("keys", ARGV[1])'


def merge_options(base: Dict[str, Any], *overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Deep merge option mappings into a new dict.

    Nested mappings are merged key by key; any other value in a later
    mapping replaces the earlier one.
    """
    merged = copy.deepcopy(base)
    for override in overrides:
        if not override:
            continue
        for name, value in override.items():
            current = merged.get(name)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[name] = merge_options(current, value)
            else:
                merged[name] = copy.deepcopy(value)
    return merged


def parse_connection_string(url: str) -> Dict[str, Any]:
    """
    Parse a redis:// connection string into connection options.

    Args:
        url: Connection string, e.g. redis://:secret@localhost:6379/2?socket_timeout=5

    Returns:
        Connection options with host, port, db, optional password and
        the remaining query parameters under 'options'

    Raises:
        ValueError: If the scheme is not redis
    """
    connection = urllib.parse.urlparse(url)
    if connection.scheme != 'redis':
        raise ValueError('Invalid Connection String. Require redis: protocol')

    query: Dict[str, Any] = {}
    for name, value in urllib.parse.parse_qsl(connection.query):
        if name not in URL_QUERY_ARGUMENTS:
            raise ValueError(f"Invalid Connection String. Unknown parameter '{name}'")
        parser = URL_QUERY_ARGUMENT_PARSERS.get(name)
        query[name] = parser(value) if parser else value

    path_db = connection.path[1:] if connection.path else ''
    query_db = query.pop('db', None)

    options: Dict[str, Any] = {
        'host': connection.hostname,
        'port': connection.port or RedisClients.DEFAULT_PORT,
        'db': int(path_db or query_db or 0),
        'options': query,
    }

    # only the part after ':' is the password; a bare user is used as is
    if connection.netloc and '@' in connection.netloc:
        userinfo = connection.netloc.rsplit('@', 1)[0]
        password = userinfo.split(':', 1)[1] if ':' in userinfo else userinfo
        if password:
            options['password'] = urllib.parse.unquote(password)

    return options


def _flatten_once(values: Iterable[Any]) -> List[Any]:
    flat: List[Any] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


class RedisClients:
    """
    Factory and registry of redis clients.

    Keeps one shared command client, one publisher and one subscriber,
    and remembers every client it creates so they can all be closed
    on shutdown.

    Example:
        >>> with RedisClients({'prefix': 'app'}) as clients:
        ...     clients.client().set(clients.key('users', 1), 'John Doe')
        ...     clients.count('app:users:*')
        1
    """

    DEFAULT_PREFIX = 'r'
    DEFAULT_SEPARATOR = ':'
    DEFAULT_HOST = '127.0.0.1'
    DEFAULT_PORT = 6379

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        """
        Initialize client factories.

        Args:
            options: Overrides for prefix, separator and the 'redis'
                connection options (mapping or redis:// connection string)
        """
        self.defaults = merge_options(self.builtin_defaults(), options)
        self._clients: List[redis.Redis] = []
        self._client: Optional[redis.Redis] = None
        self.publisher: Optional[redis.Redis] = None
        self.subscriber: Optional[PubSub] = None

    def __enter__(self):
        self.init()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.quit()
        return False

    @classmethod
    def builtin_defaults(cls) -> Dict[str, Any]:
        """Default key layout and connection options."""
        return {
            'prefix': cls.DEFAULT_PREFIX,
            'separator': cls.DEFAULT_SEPARATOR,
            'redis': {
                'host': cls.DEFAULT_HOST,
                'port': cls.DEFAULT_PORT,
            },
        }

    @property
    def prefix(self) -> str:
        return self.defaults['prefix']

    @property
    def separator(self) -> str:
        return self.defaults['separator']

    @property
    def clients(self) -> List[redis.Redis]:
        """All clients created so far."""
        return list(self._clients)

    # ==================== Client Factories ====================

    def create_client(self, options: Optional[Dict[str, Any]] = None) -> redis.Redis:
        """
        Instantiate a new redis client.

        Args:
            options: Overrides merged over the instance defaults

        Returns:
            A new redis client, tracked for shutdown

        Raises:
            ValueError: If a connection string without redis scheme is given
        """
        options = merge_options(self.defaults, options)

        connection = options['redis']
        if isinstance(connection, str):
            connection = parse_connection_string(connection)

        kwargs: Dict[str, Any] = {'decode_responses': True}
        kwargs.update(connection.get('options') or {})

        socket_path = connection.get('socket')
        if socket_path:
            kwargs['unix_socket_path'] = socket_path
        else:
            kwargs['host'] = connection.get('host') or self.DEFAULT_HOST
            kwargs['port'] = int(connection.get('port') or self.DEFAULT_PORT)

        password = connection.get('password') or connection.get('auth')
        if password:
            kwargs['password'] = password

        if connection.get('db'):
            kwargs['db'] = int(connection['db'])

        target = socket_path or f"{kwargs['host']}:{kwargs['port']}"
        logger.debug(f"Creating redis client for {target} db={kwargs.get('db', 0)}")
        client = redis.Redis(**kwargs)

        self._clients.append(client)
        return client

    def init(self) -> redis.Redis:
        """
        Initialize the shared client and the pub/sub pair.

        Returns:
            The shared command client
        """
        if self._client is None:
            self._client = self.create_client()
            logger.info(f"Initialized redis clients with prefix '{self.prefix}'")

        self.pubsub()

        return self._client

    client = init

    def pubsub(self) -> PubSubClients:
        """
        Get the publisher and subscriber pair, creating them if needed.

        Each side gets its own dedicated connection, since a connection
        in subscribe mode cannot issue regular commands.
        """
        if self.publisher is None:
            self.publisher = self.create_client()

        if self.subscriber is None:
            self.subscriber = self.create_client().pubsub()

        return PubSubClients(self.publisher, self.subscriber)

    def multi(self) -> Pipeline:
        """Start a MULTI/EXEC transaction on the shared client."""
        return self.init().pipeline(transaction=True)

    def info(self) -> Dict[str, Any]:
        """Get server health information."""
        return self.init().info()

    # ==================== Keys ====================

    def key(self, *parts: Any) -> str:
        """
        Prepare a namespaced storage key.

        Args:
            *parts: Key parts; lists and tuples are expanded in place

        Returns:
            prefix and parts joined with the separator. Without parts a
            time based uuid is used as the key.
        """
        flat = _flatten_once(parts)
        if not flat:
            flat = [str(uuid.uuid1())]
        return self.separator.join(str(part) for part in [self.prefix] + flat)

    def count(self, *patterns: Union[str, Iterable[str]]) -> Union[int, List[int]]:
        """
        Count the number of keys matching the given patterns.

        Patterns are matched as given, without the key prefix.

        Args:
            *patterns: Single patterns or collections of patterns

        Returns:
            The count for a single pattern, or a list of counts in
            pattern order

        Raises:
            MissingPatternsError: If no pattern is given
        """
        unique: List[str] = []
        for pattern in _flatten_once(patterns):
            if pattern and pattern not in unique:
                unique.append(pattern)

        if not unique:
            raise MissingPatternsError()

        transaction = self.multi()
        for pattern in unique:
            transaction.eval(COUNT_SCRIPT, 0, pattern)

        logger.debug(f"Counting keys for patterns {unique}")
        counts = [int(count) for count in transaction.execute()]

        return counts if len(counts) > 1 else counts[0]

    size = count

    def clear(self, pattern: Optional[str] = None) -> int:
        """
        Delete all keys under the prefix, optionally narrowed by pattern.

        Args:
            pattern: Key pattern below the prefix, e.g. 'users'

        Returns:
            Number of keys deleted
        """
        parts = [part for part in (self.prefix, pattern) if part]
        match = self.separator.join(parts) + '*'

        client = self.init()
        keys = list(client.scan_iter(match=match))
        if not keys:
            logger.debug(f"No keys to clear for '{match}'")
            return 0

        transaction = self.multi()
        for key in keys:
            transaction.delete(key)

        deleted = sum(int(result) for result in transaction.execute())
        logger.info(f"Cleared {deleted} keys matching '{match}'")
        return deleted

    # ==================== Shutdown ====================

    def quit(self) -> None:
        """Close all clients and reset to the built-in defaults."""
        if self.subscriber is not None:
            try:
                if self.subscriber.subscribed:
                    self.subscriber.unsubscribe()
                    self.subscriber.punsubscribe()
                self.subscriber.close()
            except redis.exceptions.RedisError as e:
                logger.warning(f"Failed to release subscriber: {e}")

        for client in self._clients:
            try:
                client.close()
            except redis.exceptions.RedisError as e:
                logger.warning(f"Failed to close redis client: {e}")

        if self._clients:
            logger.info(f"Closed {len(self._clients)} redis clients")

        self._client = None
        self.publisher = None
        self.subscriber = None

        self.defaults = self.builtin_defaults()

        self._clients = []

        # drop the exit hook registered by create(), if any
        atexit.unregister(self.quit)

    reset = quit
