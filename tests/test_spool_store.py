import threading

from wa_webhook.queue.spool_store import CLAIM_SUFFIX, SpoolListStore


def test_pop_returns_entries_in_push_order(store):
    for i in range(5):
        store.push("q", f"item-{i}")

    assert store.length("q") == 5
    assert [store.pop("q") for _ in range(5)] == [f"item-{i}" for i in range(5)]
    assert store.length("q") == 0


def test_pop_on_empty_list_returns_none(store):
    assert store.pop("never-used") is None
    assert store.length("never-used") == 0


def test_lists_are_independent(store):
    store.push("wa:webhook:queue", "main")
    store.push("wa:webhook:failed", "dead")

    assert store.pop("wa:webhook:failed") == "dead"
    assert store.length("wa:webhook:queue") == 1


def test_entries_survive_a_new_store_instance(tmp_path):
    SpoolListStore(tmp_path).push("q", "durable")

    assert SpoolListStore(tmp_path).pop("q") == "durable"


def test_concurrent_consumers_never_pop_the_same_entry(tmp_path):
    producer = SpoolListStore(tmp_path)
    expected = [f"item-{i}" for i in range(200)]
    for value in expected:
        producer.push("q", value)

    popped = []
    lock = threading.Lock()

    def consume():
        consumer = SpoolListStore(tmp_path)
        while True:
            value = consumer.pop("q")
            if value is None:
                return
            with lock:
                popped.append(value)

    threads = [threading.Thread(target=consume) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(popped) == len(expected)
    assert sorted(popped) == sorted(expected)


def test_recover_claims_returns_orphaned_entries(tmp_path):
    store = SpoolListStore(tmp_path)
    store.push("q", "orphan")
    ready = next((tmp_path / "q").glob("*.evt"))
    ready.rename(ready.with_suffix(CLAIM_SUFFIX))
    assert store.length("q") == 0

    assert store.recover_claims() == 1
    assert store.pop("q") == "orphan"


def test_list_keys_are_sanitised_into_directory_names(store):
    store.push("wa:webhook:queue", "x")

    assert (store.base_dir / "wa_webhook_queue").is_dir()


def test_undecodable_bytes_are_popped_not_stranded(store):
    store.push("q", "placeholder")
    ready = next((store.base_dir / "q").glob("*.evt"))
    ready.write_bytes(b'{"payload": \xff\xfe}')

    value = store.pop("q")

    assert value == '{"payload": \ufffd\ufffd}'
    assert list((store.base_dir / "q").iterdir()) == []
