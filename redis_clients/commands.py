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
Redis Clients - JSON aware command helpers

Values are stored as JSON unless they already are strings, and decoded
on the way back. Nested mappings saved as hashes are flattened to dotted
field names, e.g. {'card': {'number': 42}} is stored as field 'card.number'.
Hash fields are always JSON encoded, strings included, so they come back
with the type they were saved with.
"""

import json
import logging
from typing import Any, Dict, Optional, Union

from .clients import RedisClients


logger = logging.getLogger(__name__)


FIELD_DELIMITER = '.'

EXPIRY_OPTIONS = {'EX': 'ex', 'PX': 'px'}
STRATEGY_OPTIONS = {'NX': 'nx', 'XX': 'xx'}


def stringify(value: Any) -> Union[str, bytes]:
    """Encode a value to JSON unless it is already a string."""
    if isinstance(value, (str, bytes)):
        return value
    return json.dumps(value, default=str)


def parse(value: Any) -> Any:
    """Decode a stored value, returning it untouched if it is not JSON."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def flatten(value: Any, parent: str = '') -> Dict[str, Any]:
    """
    Flatten nested mappings and lists into dotted field names.

    Empty mappings and lists are kept as leaf values.

    Args:
        value: Mapping (or list) to flatten
        parent: Field name prefix used while recursing

    Returns:
        Single level dict of field name to leaf value
    """
    if isinstance(value, dict):
        items = value.items()
    elif isinstance(value, (list, tuple)):
        items = enumerate(value)
    else:
        return {parent: value}

    fields: Dict[str, Any] = {}
    for name, child in items:
        field = f"{parent}{FIELD_DELIMITER}{name}" if parent else str(name)
        if isinstance(child, (dict, list, tuple)) and child:
            fields.update(flatten(child, field))
        else:
            fields[field] = child
    return fields


def unflatten(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rebuild nested mappings from dotted field names.

    A level whose keys are exactly 0..n-1 becomes a list.
    """
    root: Dict[str, Any] = {}
    built = {id(root)}

    for field, value in fields.items():
        node = root
        names = field.split(FIELD_DELIMITER)
        for name in names[:-1]:
            child = node.get(name)
            if not isinstance(child, dict) or id(child) not in built:
                child = {}
                built.add(id(child))
                node[name] = child
            node = child
        node[names[-1]] = value

    return _restore_lists(root, built)


def _restore_lists(node: Any, built: set) -> Any:
    if not isinstance(node, dict) or id(node) not in built:
        return node

    restored = {name: _restore_lists(child, built) for name, child in node.items()}

    indexes = sorted(int(name) for name in restored if name.isdecimal() and str(int(name)) == name)
    if restored and indexes == list(range(len(restored))):
        return [restored[str(index)] for index in indexes]
    return restored


class Commands:
    """
    Command shortcuts bound to a RedisClients instance.

    Keys are namespaced with the instance prefix before they reach redis.

    Example:
        >>> commands = Commands(clients)
        >>> commands.set('user:1001', {'name': 'Jane', 'age': 30})
        {'name': 'Jane', 'age': 30}
        >>> commands.get('user:1001')
        {'name': 'Jane', 'age': 30}
    """

    def __init__(self, clients: RedisClients):
        self.clients = clients

    # ==================== String Operations ====================

    def set(
        self,
        key: Any = None,
        value: Any = None,
        expiry: Optional[str] = None,
        time: Optional[int] = None,
        strategy: Optional[str] = None
    ) -> Any:
        """
        Set key to hold the value, overwriting any existing value.

        Args:
            key: The key, or list of key parts
            value: Value to store; non strings are stored as JSON
            expiry: 'EX' for seconds or 'PX' for milliseconds
            time: Expiry time in the unit chosen by expiry
            strategy: 'NX' to only set a new key, 'XX' to only update

        Returns:
            The value given, or None when key or value is missing

        Raises:
            ValueError: If expiry or strategy is not recognised
        """
        if key is None or value is None:
            return None

        kwargs: Dict[str, Any] = {}

        if expiry is not None:
            option = EXPIRY_OPTIONS.get(expiry.upper()) if isinstance(expiry, str) else None
            if option is None:
                raise ValueError(f"Invalid expiry '{expiry}' - must be one of {sorted(EXPIRY_OPTIONS)}")
            if not time:
                raise ValueError(f"Missing time for expiry '{expiry}'")
            kwargs[option] = time

        if strategy is not None:
            option = STRATEGY_OPTIONS.get(strategy.upper()) if isinstance(strategy, str) else None
            if option is None:
                raise ValueError(f"Invalid strategy '{strategy}' - must be one of {sorted(STRATEGY_OPTIONS)}")
            kwargs[option] = True

        name = self.clients.key(key)
        logger.debug(f"SET {name} {kwargs}")
        self.clients.client().set(name, stringify(value), **kwargs)

        return value

    def get(self, key: Any = None) -> Any:
        """
        Get the value of key.

        Returns:
            The decoded value or None if not found
        """
        if key is None:
            return None

        name = self.clients.key(key)
        logger.debug(f"GET {name}")
        return parse(self.clients.client().get(name))

    # ==================== Hash Operations ====================

    def hmset(self, key: Any = None, value: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Save a mapping as a hash, flattening nested mappings.

        Args:
            key: The key, or list of key parts
            value: Mapping to store

        Returns:
            The mapping given, or None when key or value is missing
        """
        if key is None or value is None:
            return None

        # every leaf is JSON, strings included, so '10.50' and 10.5 stay apart
        fields = {field: json.dumps(leaf, default=str) for field, leaf in flatten(value).items()}
        if not fields:
            return value

        name = self.clients.key(key)
        logger.debug(f"HSET {name} with {len(fields)} fields")
        self.clients.client().hset(name, mapping=fields)

        return value

    def hgetall(self, key: Any = None) -> Optional[Dict[str, Any]]:
        """Get a hash saved with hmset as a nested mapping."""
        if key is None:
            return None

        name = self.clients.key(key)
        logger.debug(f"HGETALL {name}")
        fields = self.clients.client().hgetall(name)
        if not fields:
            return None

        return unflatten({field: parse(leaf) for field, leaf in fields.items()})
