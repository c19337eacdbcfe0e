# Copyright © 2025-2030, All Rights Reserved
# Ashutosh Sinha | Email: ajsinha@gmail.com
#
# Legal Notice: This module and the associated software architecture are proprietary
# and confidential. Unauthorized copying, distribution, modification, or use is
# strictly prohibited without explicit written permission from the copyright holder.

"""
Redis Clients
=============

Redis client factories with key namespacing, bulk key operations and
JSON aware command shortcuts.

Example usage:
    >>> import redis_clients
    >>> clients = redis_clients.create({'prefix': 'app', 'redis': 'redis://localhost:6379/0'})
    >>> clients.commands.set('user:1001', {'name': 'Jane'})
    {'name': 'Jane'}
    >>> clients.commands.get('user:1001')
    {'name': 'Jane'}
    >>> clients.count('app:user:*')
    1
    >>> clients.clear()
    1
    >>> clients.quit()

Or using context manager:
    >>> with redis_clients.RedisClients({'prefix': 'app'}) as clients:
    ...     clients.client().ping()
"""

import atexit
from typing import Any, Dict, Optional

from .clients import (
    MissingPatternsError,
    PubSubClients,
    RedisClients,
    RedisClientsException,
)
from .commands import Commands, flatten, parse, stringify, unflatten

__version__ = "0.4.0"

__all__ = [
    "create",
    "Commands",
    "MissingPatternsError",
    "PubSubClients",
    "RedisClients",
    "RedisClientsException",
    "flatten",
    "parse",
    "stringify",
    "unflatten",
]


def create(options: Optional[Dict[str, Any]] = None) -> RedisClients:
    """
    Create and initialize redis clients.

    Clients are closed automatically when the interpreter exits.

    Args:
        options: Overrides for prefix, separator and the 'redis'
            connection options

    Returns:
        Initialized RedisClients with command shortcuts on .commands
    """
    clients = RedisClients(options)
    clients.init()

    atexit.register(clients.quit)

    clients.commands = Commands(clients)

    return clients
