import asyncio
import json

import pytest
from websockets.asyncio.server import serve

from streamclip.models.config import ObsConfig
from streamclip.obs.client import (
    ObsAuthError,
    ObsConnectionError,
    ObsRequestError,
    ObsWebSocketClient,
    auth_response,
)
from streamclip.obs.controller import RecordingController

HELLO = {
    "op": 0,
    "d": {
        "obsWebSocketVersion": "5.0.0",
        "rpcVersion": 1,
        "authentication": {"challenge": "challenge", "salt": "salt"},
    },
}


def test_auth_response_depends_on_all_inputs():
    base = auth_response("pw", "salt", "challenge")
    assert base == auth_response("pw", "salt", "challenge")
    assert base != auth_response("other", "salt", "challenge")
    assert base != auth_response("pw", "pepper", "challenge")
    assert base != auth_response("pw", "salt", "other")


async def _fake_obs(ws):
    await ws.send(json.dumps(HELLO))
    identify = json.loads(await ws.recv())
    if identify["d"].get("authentication") != auth_response("pw", "salt", "challenge"):
        await ws.close(code=4009, reason="Authentication failed.")
        return
    await ws.send(json.dumps({"op": 2, "d": {"negotiatedRpcVersion": 1}}))
    async for raw in ws:
        d = json.loads(raw)["d"]
        ok = d["requestType"] != "Bogus"
        if d["requestType"] == "SaveReplayBuffer":
            await ws.send(json.dumps({
                "op": 5,
                "d": {
                    "eventType": "ReplayBufferSaved",
                    "eventIntent": 64,
                    "eventData": {"savedReplayPath": "/videos/Replay.mkv"},
                },
            }))
        await ws.send(json.dumps({
            "op": 7,
            "d": {
                "requestType": d["requestType"],
                "requestId": d["requestId"],
                "requestStatus": {"result": ok, "code": 100 if ok else 204, "comment": None if ok else "Unknown request"},
                "responseData": {"outputActive": True} if ok else None,
            },
        }))


def test_handshake_requests_and_events():
    async def main():
        async with serve(_fake_obs, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = ObsWebSocketClient(f"ws://127.0.0.1:{port}", "pw", request_timeout=2)
            saved = []
            client.on("ReplayBufferSaved", saved.append)
            await client.connect()
            assert client.identified

            status = await client.call("GetReplayBufferStatus")
            await client.call("SaveReplayBuffer")
            with pytest.raises(ObsRequestError) as exc:
                await client.call("Bogus")
            await client.disconnect()
            return status, saved, exc.value

    status, saved, error = asyncio.run(main())
    assert status == {"outputActive": True}
    assert saved == [{"savedReplayPath": "/videos/Replay.mkv"}]
    assert error.code == 204


def test_wrong_password_raises_auth_error():
    async def main():
        async with serve(_fake_obs, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = ObsWebSocketClient(f"ws://127.0.0.1:{port}", "wrong", request_timeout=2)
            with pytest.raises(ObsAuthError):
                await client.connect()
            assert not client.identified

    asyncio.run(main())


def test_missing_password_raises_auth_error():
    async def main():
        async with serve(_fake_obs, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = ObsWebSocketClient(f"ws://127.0.0.1:{port}", None, request_timeout=2)
            with pytest.raises(ObsAuthError):
                await client.connect()

    asyncio.run(main())


async def _garbled_obs(ws):
    await ws.send("not json")
    await ws.wait_closed()


def test_unreadable_hello_is_a_connection_error():
    async def main():
        async with serve(_garbled_obs, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = ObsWebSocketClient(f"ws://127.0.0.1:{port}", "pw", request_timeout=2)
            with pytest.raises(ObsConnectionError):
                await client.connect()
            assert not client.identified

    asyncio.run(main())


def test_controller_survives_unreadable_hello():
    async def main():
        async with serve(_garbled_obs, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            controller = RecordingController.from_config(ObsConfig(
                url=f"ws://127.0.0.1:{port}",
                request_timeout_seconds=2,
                connect_attempts=1,
            ))
            return await controller.connect(), controller.connected

    assert asyncio.run(main()) == (False, False)
