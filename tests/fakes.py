from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Sequence, Tuple

from clipcut.engine import TranscodeEngine
from clipcut.errors import EngineError


class FakeEngine(TranscodeEngine):
    """In-memory engine that records every call in order."""

    def __init__(self, fail_on: Optional[str] = None, init_error: bool = False) -> None:
        self.files: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, object]] = []
        self.fail_on = fail_on
        self.init_error = init_error
        self.init_count = 0
        self.gate: Optional[asyncio.Event] = None
        self._in_flight = False

    def _enter(self) -> None:
        if self._in_flight:
            raise AssertionError("overlapping engine operations")
        self._in_flight = True

    async def initialize(self) -> None:
        self.init_count += 1
        await asyncio.sleep(0)
        if self.init_error:
            raise EngineError("boom")

    async def write_file(self, name: str, data: bytes) -> None:
        self._enter()
        try:
            self.calls.append(("write", name))
            if self.gate is not None:
                await self.gate.wait()
            if self.fail_on == f"write:{name}":
                raise EngineError(f"write {name} failed")
            self.files[name] = bytes(data)
        finally:
            self._in_flight = False

    async def exec(self, args: Sequence[str]) -> None:
        self._enter()
        try:
            args = list(args)
            self.calls.append(("exec", args))
            await asyncio.sleep(0)
            out = args[-1]
            if self.fail_on == f"exec:{out}":
                raise EngineError(f"exec {out} failed")
            if "concat" in args:
                manifest = self.files["concat.txt"].decode("utf-8")
                names = [line[len("file '"):-1] for line in manifest.splitlines()]
                self.files[out] = b"".join(self.files[n] for n in names)
            else:
                ss = args[args.index("-ss") + 1]
                to = args[args.index("-to") + 1]
                self.files[out] = f"[{ss}-{to}]".encode("utf-8")
        finally:
            self._in_flight = False

    async def read_file(self, name: str) -> bytes:
        self._enter()
        try:
            self.calls.append(("read", name))
            if self.fail_on == f"read:{name}":
                raise EngineError(f"read {name} failed")
            return self.files[name]
        except KeyError as ex:
            raise EngineError(f"{name} not found") from ex
        finally:
            self._in_flight = False

    async def delete_file(self, name: str) -> None:
        self.calls.append(("delete", name))
        self.files.pop(name, None)

    def op_calls(self) -> List[Tuple[str, object]]:
        return [c for c in self.calls if c[0] != "delete"]


class FakePlayer:
    def __init__(self, position: float = 0.0) -> None:
        self.position = position

    async def current_position(self) -> float:
        return self.position


class FakeFrameSource:
    """Frame source that fails the test if two seeks overlap."""

    def __init__(self, gate: Optional[asyncio.Event] = None) -> None:
        self.seeks: List[float] = []
        self.position = 0.0
        self.gate = gate
        self._seeking = False

    async def seek_to(self, sec: float) -> None:
        if self._seeking:
            raise AssertionError("concurrent seek")
        self._seeking = True
        try:
            await asyncio.sleep(0)
            self.position = sec
            self.seeks.append(sec)
        finally:
            self._seeking = False

    async def capture_frame(self, width: int, height: int) -> bytes:
        if self.gate is not None:
            await self.gate.wait()
        return f"{self.position:.1f}@{width}x{height}".encode("utf-8")
