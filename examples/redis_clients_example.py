#!/usr/bin/env python3
# Copyright © 2025-2030, All Rights Reserved
# Ashutosh Sinha | Email: ajsinha@gmail.com
#
# Legal Notice: This module and the associated software architecture are proprietary
# and confidential. Unauthorized copying, distribution, modification, or use is
# strictly prohibited without explicit written permission from the copyright holder.
#

"""
Redis Clients - Examples

Walks through key building, JSON commands, hashes, counting, clearing
and pub/sub against a running redis server.

Usage:
    python redis_clients_example.py [--host HOST] [--port PORT] [--url URL] [--prefix PREFIX]

Default connection: 127.0.0.1:6379
"""

import sys
import time
import logging

import redis

import redis_clients
from redis_clients import RedisClients, RedisClientsException

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}\n")


def print_result(description: str, result):
    """Print a result with description."""
    print(f"  {description}: {result}")


def example_keys(clients: RedisClients):
    """Demonstrate namespaced keys."""
    print_section("1. KEYS")

    print_result("key('users', 1001)", clients.key('users', 1001))
    print_result("key(['orders', 'pending'])", clients.key(['orders', 'pending']))
    print_result("key() (generated)", clients.key())


def example_values(clients: RedisClients):
    """Demonstrate JSON aware SET and GET."""
    print_section("2. SET / GET")
    commands = clients.commands

    commands.set('greeting', 'Hello, Redis!')
    print_result("String", commands.get('greeting'))

    commands.set('counter', 42)
    print_result("Number", commands.get('counter'))

    commands.set('tags', ['cache', 'redis'])
    print_result("List", commands.get('tags'))

    commands.set('user:1001', {'name': 'Jane', 'age': 30, 'active': True})
    print_result("Mapping", commands.get('user:1001'))

    commands.set('temp', 'expires soon', 'EX', 1)
    print_result("With expiry (1s)", commands.get('temp'))
    time.sleep(1.5)
    print_result("After expiry", commands.get('temp'))

    commands.set('unique', 'first', 'EX', 60, 'NX')
    commands.set('unique', 'second', 'EX', 60, 'NX')
    print_result("NX kept first value", commands.get('unique'))


def example_hashes(clients: RedisClients):
    """Demonstrate hashes with nested mappings."""
    print_section("3. HMSET / HGETALL")
    commands = clients.commands

    card = {
        'name': 'Jane Doe',
        'email': 'jane@example.com',
        'address': {'street': 'Main St', 'city': 'Dar es Salaam', 'geo': {'lat': -6.8, 'lng': 39.2}},
        'phones': ['+255 700 000 000', '+255 711 111 111'],
    }
    commands.hmset('card:1', card)
    print_result("Raw fields", clients.client().hgetall(clients.key('card:1')))
    print_result("HGETALL", commands.hgetall('card:1'))


def example_count_and_clear(clients: RedisClients):
    """Demonstrate counting and clearing keys by pattern."""
    print_section("4. COUNT / CLEAR")

    users = clients.key('user', '*')
    everything = clients.key('*')
    print_result(f"count('{users}')", clients.count(users))
    print_result(f"count('{users}', '{everything}')", clients.count(users, everything))

    try:
        clients.count()
    except RedisClientsException as e:
        print_result("count() without patterns", f"{e} (status {e.status_code})")

    print_result("clear('user')", clients.clear('user'))
    print_result(f"count('{users}') after clear", clients.count(users))


def example_pubsub(clients: RedisClients):
    """Demonstrate the shared publisher and subscriber."""
    print_section("5. PUB/SUB")

    publisher, subscriber = clients.pubsub()
    channel = clients.key('events')

    subscriber.subscribe(channel)
    subscriber.get_message(timeout=1.0)  # subscribe confirmation

    receivers = publisher.publish(channel, 'hello subscribers')
    print_result("PUBLISH receivers", receivers)

    message = subscriber.get_message(ignore_subscribe_messages=True, timeout=1.0)
    print_result("Received", message['data'] if message else None)


def example_server_info(clients: RedisClients):
    """Display server information."""
    print_section("6. SERVER INFORMATION")

    info = clients.info()
    print_result("redis_version", info.get('redis_version'))
    print_result("connected_clients", info.get('connected_clients'))
    print_result("Clients created", len(clients.clients))


def main():
    """Main function to run all examples."""
    import argparse

    parser = argparse.ArgumentParser(description='Redis Clients Examples')
    parser.add_argument('--host', default='127.0.0.1', help='Redis server host')
    parser.add_argument('--port', type=int, default=6379, help='Redis server port')
    parser.add_argument('--password', default=None, help='Authentication password')
    parser.add_argument('--url', default=None, help='redis:// connection string (overrides host/port)')
    parser.add_argument('--prefix', default='example', help='Key prefix')
    parser.add_argument('--no-cleanup', action='store_true', help='Skip cleanup')
    args = parser.parse_args()

    connection = args.url or {'host': args.host, 'port': args.port, 'password': args.password}

    try:
        clients = redis_clients.create({'prefix': args.prefix, 'redis': connection})

        example_keys(clients)
        example_values(clients)
        example_hashes(clients)
        example_count_and_clear(clients)
        example_pubsub(clients)
        example_server_info(clients)

        if not args.no_cleanup:
            print_section("CLEANUP")
            print_result("Keys removed", clients.clear())

        clients.quit()
        print_section("ALL EXAMPLES COMPLETED SUCCESSFULLY")

    except redis.exceptions.ConnectionError as e:
        logger.error(f"Could not connect to redis: {e}")
        sys.exit(1)
    except redis.exceptions.RedisError as e:
        logger.error(f"Redis error: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid options: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
