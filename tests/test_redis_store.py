from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from wa_webhook.errors import QueueStoreError
from wa_webhook.queue.redis_store import RedisListStore


def test_push_pop_length_map_to_list_commands():
    client = MagicMock()
    client.rpop.return_value = "value"
    client.llen.return_value = 3
    store = RedisListStore(client)

    store.push("wa:webhook:queue", "value")
    assert store.pop("wa:webhook:queue") == "value"
    assert store.length("wa:webhook:queue") == 3

    client.lpush.assert_called_once_with("wa:webhook:queue", "value")
    client.rpop.assert_called_once_with("wa:webhook:queue")
    client.llen.assert_called_once_with("wa:webhook:queue")


def test_pop_empty_list_returns_none():
    client = MagicMock()
    client.rpop.return_value = None

    assert RedisListStore(client).pop("q") is None


def test_pop_decodes_bytes():
    client = MagicMock()
    client.rpop.return_value = b'{"retries": 0}'

    assert RedisListStore(client).pop("q") == '{"retries": 0}'


@pytest.mark.parametrize("command", ["lpush", "rpop", "llen"])
def test_redis_errors_become_queue_store_errors(command):
    client = MagicMock()
    getattr(client, command).side_effect = RedisConnectionError("connection refused")
    store = RedisListStore(client)

    with pytest.raises(QueueStoreError):
        {"lpush": lambda: store.push("q", "v"),
         "rpop": lambda: store.pop("q"),
         "llen": lambda: store.length("q")}[command]()


def test_from_url_fails_fast_when_redis_is_down():
    with patch("wa_webhook.queue.redis_store.Redis") as redis_cls:
        redis_cls.from_url.return_value.ping.side_effect = RedisConnectionError("down")

        with pytest.raises(QueueStoreError):
            RedisListStore.from_url("redis://localhost:6379")

        redis_cls.from_url.assert_called_once()
        assert redis_cls.from_url.call_args.kwargs["decode_responses"] is True
