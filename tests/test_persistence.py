import threading

import cbor2
import pytest

from blacklistbot.banstore import BannedUser, BanStore
from blacklistbot.persistence import BanlistError, BanlistFile, Flusher, FlushError


def test_load_missing_file_fails(tmp_path) -> None:
    with pytest.raises(BanlistError):
        BanlistFile(str(tmp_path / "missing.cbor")).load()


def test_save_then_load(tmp_path) -> None:
    banlist = BanlistFile(str(tmp_path / "blacklist.cbor"))
    users = [BannedUser("guest1", "lobby")]
    banlist.save(users)
    assert banlist.load() == users
    assert not (tmp_path / "blacklist.cbor.tmp").exists()


def test_save_replaces_contents(tmp_path) -> None:
    banlist = BanlistFile(str(tmp_path / "blacklist.cbor"))
    banlist.save([BannedUser("guest1", "lobby"), BannedUser("guest2", "lobby")])
    banlist.save([BannedUser("guest3", "joim")])
    assert banlist.load() == [BannedUser("guest3", "joim")]


def test_load_malformed_file_fails(tmp_path) -> None:
    path = tmp_path / "blacklist.cbor"
    path.write_bytes(cbor2.dumps("not a list"))
    with pytest.raises(BanlistError):
        BanlistFile(str(path)).load()

    path.write_bytes(b"\xff\x00garbage")
    with pytest.raises(BanlistError):
        BanlistFile(str(path)).load()


def test_save_failure_raises_flush_error(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    with pytest.raises(FlushError):
        BanlistFile(str(blocker / "blacklist.cbor")).save([])


def test_flush_writes_snapshot(tmp_path) -> None:
    store = BanStore()
    store.ban("guest1", "lobby")
    banlist = BanlistFile(str(tmp_path / "blacklist.cbor"))

    flusher = Flusher(store, banlist, 60.0)
    assert flusher.flush() == 1
    assert banlist.load() == [BannedUser("guest1", "lobby")]


def test_flush_loop_runs_on_interval(tmp_path) -> None:
    store = BanStore()
    store.ban("guest1", "lobby")
    banlist = BanlistFile(str(tmp_path / "blacklist.cbor"))

    flusher = Flusher(store, banlist, 0.01)
    flusher.start()
    try:
        for _ in range(500):
            if banlist.path.exists():
                break
            threading.Event().wait(0.01)
    finally:
        flusher.stop()

    assert banlist.load() == [BannedUser("guest1", "lobby")]


def test_flush_loop_failure_is_fatal(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    failed = threading.Event()
    seen: list[FlushError] = []

    def on_fatal(exc: FlushError) -> None:
        seen.append(exc)
        failed.set()

    flusher = Flusher(
        BanStore(), BanlistFile(str(blocker / "blacklist.cbor")), 0.01, on_fatal=on_fatal
    )
    flusher.start()
    assert failed.wait(5.0)
    flusher.stop()

    assert len(seen) == 1
    assert isinstance(seen[0], FlushError)


def test_flusher_rejects_non_positive_interval(tmp_path) -> None:
    flusher = Flusher(BanStore(), BanlistFile(str(tmp_path / "b.cbor")), 0)
    with pytest.raises(ValueError):
        flusher.start()
