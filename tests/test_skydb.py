import json

import pytest

from skynet_sdk.errors import (
    ContentFormatError,
    RevisionExhaustedError,
    RevisionTooLowError,
    TransportError,
    ValidationError,
)
from skynet_sdk.skydb import DELETION_ENTRY_DATA, MAX_ENTRY_LENGTH, increment_revision
from skynet_sdk.skydb.engine import check_cached_data_link, parse_data_link, validate_entry_data
from skynet_sdk.skylink import decode_skylink, encode_skylink_base64
from skynet_sdk.utils.bytes import MAX_REVISION
from skynet_sdk.utils.hash import hash_data_key_hex

from conftest import PRIVATE_KEY, PUBLIC_KEY, make_client

APP_KEY_HEX = hash_data_key_hex("app")


def stored_revision(portal, data_key="app"):
    return portal.entries[(PUBLIC_KEY, hash_data_key_hex(data_key))].revision


def cached_revision(client, data_key="app"):
    return client.db.revision_number_cache.get_revision_and_mutex_for_entry(PUBLIC_KEY, data_key).revision


# --- helpers -------------------------------------------------------------------


def test_increment_revision():
    assert increment_revision(-1) == 0
    assert increment_revision(41) == 42
    assert increment_revision(MAX_REVISION - 1) == MAX_REVISION
    with pytest.raises(RevisionExhaustedError):
        increment_revision(MAX_REVISION)


def test_validate_entry_data():
    validate_entry_data(bytes(MAX_ENTRY_LENGTH), False)
    with pytest.raises(ValidationError) as ei:
        validate_entry_data(bytes(MAX_ENTRY_LENGTH + 1), False)
    assert "length <= 70" in str(ei.value)
    with pytest.raises(ValidationError) as ei:
        validate_entry_data(DELETION_ENTRY_DATA, False)
    assert "deletion sentinel" in str(ei.value)
    validate_entry_data(DELETION_ENTRY_DATA, True)


def test_parse_data_link():
    link = "CABAB_1Dt0FJsxqsu_J4TodNCbCGvtFf1Uys_3EgzOlTcg"
    assert parse_data_link(decode_skylink(link), legacy=False) == (link, "sia://" + link)
    assert parse_data_link(link.encode(), legacy=True) == (link, "sia://" + link)
    with pytest.raises(ValidationError):
        parse_data_link(link.encode(), legacy=False)
    with pytest.raises(ValidationError):
        parse_data_link(b"short", legacy=True)


def test_check_cached_data_link():
    link = "CABAB_1Dt0FJsxqsu_J4TodNCbCGvtFf1Uys_3EgzOlTcg"
    assert check_cached_data_link(link, "sia://" + link)
    assert not check_cached_data_link(link, None)
    assert not check_cached_data_link(link, "")
    with pytest.raises(ValidationError):
        check_cached_data_link(link, "not a skylink")


# --- JSON ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_set_then_get_json(portal):
    async with make_client(portal) as client:
        res = await client.db.set_json(PRIVATE_KEY, "app", {"message": "hi", "n": [1, 2]})
        assert res.data == {"message": "hi", "n": [1, 2]}
        assert res.data_link.startswith("sia://")

        got = await client.db.get_json(PUBLIC_KEY, "app")
    assert got.data == {"message": "hi", "n": [1, 2]}
    assert got.data_link == res.data_link
    assert stored_revision(portal) == 0


@pytest.mark.asyncio
async def test_json_upload_format(portal):
    async with make_client(portal) as client:
        res = await client.db.set_json(PRIVATE_KEY, "app", {"a": 1})

    filename, content_type = portal.uploads[-1]
    assert filename == "dk:" + b"app".hex()
    assert content_type == "application/json"
    content, _ = portal.files[res.data_link[len("sia://"):]]
    assert json.loads(content) == {"_data": {"a": 1}, "_v": 2}


@pytest.mark.asyncio
async def test_json_upload_filename_for_hashed_key(portal):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, APP_KEY_HEX, {"a": 1}, {"hashed_data_key_hex": True})
    assert portal.uploads[-1][0] == "dk:" + APP_KEY_HEX


@pytest.mark.asyncio
async def test_revisions_increase_monotonically(portal):
    async with make_client(portal) as client:
        for i in range(3):
            await client.db.set_json(PRIVATE_KEY, "app", {"i": i})
            assert stored_revision(portal) == i
            assert cached_revision(client) == i
        assert (await client.db.get_json(PUBLIC_KEY, "app")).data == {"i": 2}
    # only the first write had to look the revision up
    assert portal.count("GET", "/skynet/registry") == 2
    assert portal.rejected == []


@pytest.mark.asyncio
async def test_fresh_client_picks_up_existing_revision(portal):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, "app", {"v": 1})
        await client.db.set_json(PRIVATE_KEY, "app", {"v": 2})

    async with make_client(portal) as other:
        await other.db.set_json(PRIVATE_KEY, "app", {"v": 3})
        assert (await other.db.get_json(PUBLIC_KEY, "app")).data == {"v": 3}
    assert stored_revision(portal) == 2


@pytest.mark.asyncio
async def test_get_json_not_found(portal):
    async with make_client(portal) as client:
        assert await client.db.get_json(PUBLIC_KEY, "app") == (None, None)
        assert await client.db.get_raw_bytes(PUBLIC_KEY, "app") == (None, None)
        assert (await client.db.get_entry_data(PUBLIC_KEY, "app")).data is None
        # a miss does not populate the cache
        assert cached_revision(client) == -1


@pytest.mark.asyncio
async def test_delete_then_read_then_overwrite(portal):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, "app", {"v": 1})
        await client.db.delete_json(PRIVATE_KEY, "app")
        assert portal.entries[(PUBLIC_KEY, APP_KEY_HEX)].data == DELETION_ENTRY_DATA

        assert await client.db.get_json(PUBLIC_KEY, "app") == (None, None)
        # the deleted entry still advances the cache
        assert cached_revision(client) == 1

        await client.db.set_json(PRIVATE_KEY, "app", {"v": 2})
        assert (await client.db.get_json(PUBLIC_KEY, "app")).data == {"v": 2}
    assert stored_revision(portal) == 2


@pytest.mark.asyncio
async def test_deleted_entry_seen_by_fresh_client(portal):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, "app", {"v": 1})
        await client.db.delete_json(PRIVATE_KEY, "app")

    async with make_client(portal) as other:
        assert await other.db.get_json(PUBLIC_KEY, "app") == (None, None)
        assert cached_revision(other) == 1
        await other.db.set_json(PRIVATE_KEY, "app", {"v": 2})
    assert stored_revision(portal) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("data_key", [".", "..", "http://localhost:8000/some/path?x=1#frag", "", "ünïcødé"])
async def test_edge_case_data_keys(portal, data_key):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, data_key, {"key": data_key})
        got = await client.db.get_json(PUBLIC_KEY, data_key)
    assert got.data == {"key": data_key}
    assert (PUBLIC_KEY, hash_data_key_hex(data_key)) in portal.entries


@pytest.mark.asyncio
async def test_data_keys_are_isolated(portal):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, "a", {"which": "a"})
        await client.db.set_json(PRIVATE_KEY, "a", {"which": "a2"})
        await client.db.set_json(PRIVATE_KEY, "b", {"which": "b"})
        assert (await client.db.get_json(PUBLIC_KEY, "a")).data == {"which": "a2"}
        assert (await client.db.get_json(PUBLIC_KEY, "b")).data == {"which": "b"}
    assert stored_revision(portal, "a") == 1
    assert stored_revision(portal, "b") == 0


@pytest.mark.asyncio
async def test_hashed_and_plain_keys_address_the_same_entry(portal):
    async with make_client(portal) as client:
        await client.db.set_json(PRIVATE_KEY, "app", {"v": 1})
        got = await client.db.get_json(PUBLIC_KEY, APP_KEY_HEX, {"hashed_data_key_hex": True})
        assert got.data == {"v": 1}

        lookups = portal.count("GET", "/skynet/registry")
        await client.db.set_json(PRIVATE_KEY, APP_KEY_HEX, {"v": 2}, {"hashed_data_key_hex": True})
        # the plain-key write warmed the shared cache slot
        assert portal.count("GET", "/skynet/registry") == lookups
        assert (await client.db.get_json(PUBLIC_KEY, "app")).data == {"v": 2}
    assert stored_revision(portal) == 1


@pytest.mark.asyncio
async def test_cached_data_link_skips_download(portal):
    async with make_client(portal) as client:
        res = await client.db.set_json(PRIVATE_KEY, "app", {"v": 1})
        downloads = len([r for r in portal.requests if r.method == "GET" and r.url.path != "/skynet/registry"])

        got = await client.db.get_json(PUBLIC_KEY, "app", {"cached_data_link": res.data_link})
        assert got == (None, res.data_link)
        after = len([r for r in portal.requests if r.method == "GET" and r.url.path != "/skynet/registry"])
        assert after == downloads

        await client.db.set_json(PRIVATE_KEY, "app", {"v": 2})
        got = await client.db.get_json(PUBLIC_KEY, "app", {"cached_data_link": res.data_link})
        assert got.data == {"v": 2}


@pytest.mark.asyncio
async def test_unwrapped_json_is_returned_as_is(portal):
    link = portal.add_file(json.dumps({"legacy": True}).encode(), "application/json")
    async with make_client(portal) as client:
        await client.db.set_data_link(PRIVATE_KEY, "app", link)
        assert (await client.db.get_json(PUBLIC_KEY, "app")).data == {"legacy": True}


@pytest.mark.asyncio
async def test_legacy_base64_entry_data(portal):
    link = portal.add_file(json.dumps({"_data": {"old": 1}, "_v": 2}).encode(), "application/json")
    portal.put_entry(PRIVATE_KEY, PUBLIC_KEY, APP_KEY_HEX, link.encode(), 4)
    async with make_client(portal) as client:
        got = await client.db.get_json(PUBLIC_KEY, "app")
    assert got == ({"old": 1}, "sia://" + link)


@pytest.mark.asyncio
async def test_legacy_entry_data_that_is_not_utf8(portal):
    async with make_client(portal) as client:
        await client.db.set_entry_data(PRIVATE_KEY, "app", b"\xff" * 46)
        with pytest.raises(ValidationError) as ei:
            await client.db.get_json(PUBLIC_KEY, "app")
    assert "entry.data" in str(ei.value)
    assert "returned entry data" in str(ei.value)


@pytest.mark.asyncio
async def test_padded_public_key_fails_before_any_request(portal):
    async with make_client(portal) as client:
        with pytest.raises(ValidationError):
            await client.db.get_json(PUBLIC_KEY[:62] + "  ", "app")
    assert portal.requests == []


@pytest.mark.asyncio
async def test_non_json_content(portal):
    link = portal.add_file(b"\x00\x01 not json")
    async with make_client(portal) as client:
        await client.db.set_data_link(PRIVATE_KEY, "app", "sia://" + link)
        with pytest.raises(ContentFormatError):
            await client.db.get_json(PUBLIC_KEY, "app")
        raw = await client.db.get_raw_bytes(PUBLIC_KEY, "app")
    assert raw == (b"\x00\x01 not json", "sia://" + link)


@pytest.mark.asyncio
async def test_set_json_validates_input(portal):
    async with make_client(portal) as client:
        with pytest.raises(ValidationError):
            await client.db.set_json(PRIVATE_KEY, "app", "not an object")  # type: ignore[arg-type]
        with pytest.raises(ValidationError):
            await client.db.set_json(PRIVATE_KEY, 5, {})  # type: ignore[arg-type]
        with pytest.raises(ValidationError):
            await client.db.set_json(PRIVATE_KEY, "app", {}, {"bogus": 1})
    assert portal.requests == []


# --- entry data ----------------------------------------------------------------


@pytest.mark.asyncio
async def test_entry_data_round_trip(portal):
    async with make_client(portal) as client:
        res = await client.db.set_entry_data(PRIVATE_KEY, "app", b"raw bytes")
        assert res.data == b"raw bytes"
        assert (await client.db.get_entry_data(PUBLIC_KEY, "app")).data == b"raw bytes"

        await client.db.set_entry_data(PRIVATE_KEY, "app", bytes(MAX_ENTRY_LENGTH))
        with pytest.raises(ValidationError):
            await client.db.set_entry_data(PRIVATE_KEY, "app", bytes(MAX_ENTRY_LENGTH + 1))

        await client.db.delete_entry_data(PRIVATE_KEY, "app")
        assert (await client.db.get_entry_data(PUBLIC_KEY, "app")).data is None
    assert stored_revision(portal) == 2


@pytest.mark.asyncio
async def test_deletion_sentinel_needs_opt_in(portal):
    empty_link = encode_skylink_base64(DELETION_ENTRY_DATA)
    async with make_client(portal) as client:
        with pytest.raises(ValidationError):
            await client.db.set_entry_data(PRIVATE_KEY, "app", DELETION_ENTRY_DATA)
        with pytest.raises(ValidationError):
            await client.db.set_data_link(PRIVATE_KEY, "app", empty_link)
        await client.db.set_entry_data(
            PRIVATE_KEY, "app", DELETION_ENTRY_DATA, {"allow_deletion_entry_data": True}
        )
    assert portal.entries[(PUBLIC_KEY, APP_KEY_HEX)].data == DELETION_ENTRY_DATA


@pytest.mark.asyncio
async def test_set_data_link(portal):
    link = portal.add_file(b"payload")
    async with make_client(portal) as client:
        await client.db.set_data_link(PRIVATE_KEY, "app", "sia://" + link)
        raw = await client.db.get_raw_bytes(PUBLIC_KEY, "app")
    assert raw == (b"payload", "sia://" + link)
    assert portal.entries[(PUBLIC_KEY, APP_KEY_HEX)].data == decode_skylink(link)


# --- revision edge cases -------------------------------------------------------


@pytest.mark.asyncio
async def test_failed_write_leaves_cache_unchanged(portal):
    async with make_client(portal) as client:
        await client.db.set_entry_data(PRIVATE_KEY, "app", b"one")
        assert cached_revision(client) == 0

        portal.fail_next("POST", "/skynet/registry", 400, body={"message": "registry is full"})
        with pytest.raises(TransportError) as ei:
            await client.db.set_entry_data(PRIVATE_KEY, "app", b"two")
        assert str(ei.value) == "registry is full"
        assert cached_revision(client) == 0

        await client.db.set_entry_data(PRIVATE_KEY, "app", b"three")
        assert cached_revision(client) == 1
    assert stored_revision(portal) == 1


@pytest.mark.asyncio
async def test_max_revision_is_terminal(portal):
    portal.put_entry(PRIVATE_KEY, PUBLIC_KEY, APP_KEY_HEX, b"final", MAX_REVISION)
    async with make_client(portal) as client:
        with pytest.raises(RevisionExhaustedError):
            await client.db.set_entry_data(PRIVATE_KEY, "app", b"more")
        assert (await client.db.get_entry_data(PUBLIC_KEY, "app")).data == b"final"
        assert cached_revision(client) == MAX_REVISION
        with pytest.raises(RevisionExhaustedError):
            await client.db.set_json(PRIVATE_KEY, "app", {"more": True})
    assert portal.entries[(PUBLIC_KEY, APP_KEY_HEX)].data == b"final"


@pytest.mark.asyncio
async def test_returned_revision_too_low(portal):
    portal.put_entry(PRIVATE_KEY, PUBLIC_KEY, APP_KEY_HEX, b"new", 5)
    async with make_client(portal) as client:
        assert (await client.db.get_entry_data(PUBLIC_KEY, "app")).data == b"new"
        assert cached_revision(client) == 5

        # the portal now serves an older, validly signed entry
        portal.put_entry(PRIVATE_KEY, PUBLIC_KEY, APP_KEY_HEX, b"old", 3)
        with pytest.raises(RevisionTooLowError):
            await client.db.get_entry_data(PUBLIC_KEY, "app")
        assert cached_revision(client) == 5


@pytest.mark.asyncio
async def test_per_call_api_key_header(portal):
    async with make_client(portal, api_key="client-key") as client:
        await client.db.get_json(PUBLIC_KEY, "app")
        await client.db.get_json(PUBLIC_KEY, "app", {"api_key": "call-key"})
    assert portal.requests[0].headers["Skynet-Api-Key"] == "client-key"
    assert portal.requests[1].headers["Skynet-Api-Key"] == "call-key"
