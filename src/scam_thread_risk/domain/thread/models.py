"""Thread input contracts and message block structures."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Union

from pydantic import Field, field_validator

from scam_thread_risk.domain.base import ContractModel

Speaker = Literal["SENDER", "RECIPIENT", "UNKNOWN"]


class CallChecks(ContractModel):
    otp_asked: bool = False
    remote_asked: bool = False
    urgent_pressured: bool = False
    first_contact: bool | None = None


class ThreadTextInput(ContractModel):
    thread_text: str = ""
    call_checks: CallChecks = Field(default_factory=CallChecks)


class LegacyThreadInput(ContractModel):
    thread: str = ""
    call_checks: CallChecks = Field(default_factory=CallChecks)

    def to_thread_text(self) -> ThreadTextInput:
        return ThreadTextInput(thread_text=self.thread, call_checks=self.call_checks)


class BlocksInput(ContractModel):
    thread_blocks: list[str] = Field(default_factory=list)
    call_checks: CallChecks = Field(default_factory=CallChecks)

    @field_validator("thread_blocks", mode="before")
    @classmethod
    def _coerce_blocks(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return ["" if item is None else str(item) for item in value]
        return value

    def to_thread_text(self) -> ThreadTextInput:
        return ThreadTextInput(thread_text="\n".join(self.thread_blocks), call_checks=self.call_checks)


AnalysisInput = Union[ThreadTextInput, LegacyThreadInput, BlocksInput]


def _has_key(payload: Mapping[str, Any], *names: str) -> bool:
    return any(name in payload and payload[name] is not None for name in names)


def resolve_thread_input(payload: AnalysisInput | Mapping[str, Any] | str | None) -> ThreadTextInput:
    """Resolve any accepted input shape into the canonical text input."""

    if payload is None:
        return ThreadTextInput()
    if isinstance(payload, str):
        return ThreadTextInput(thread_text=payload)
    if isinstance(payload, ThreadTextInput):
        return payload
    if isinstance(payload, (LegacyThreadInput, BlocksInput)):
        return payload.to_thread_text()
    if not isinstance(payload, Mapping):
        raise TypeError(f"unsupported analysis input: {type(payload).__name__}")

    if _has_key(payload, "threadText", "thread_text"):
        return ThreadTextInput.model_validate(payload)
    if _has_key(payload, "thread"):
        return LegacyThreadInput.model_validate(payload).to_thread_text()
    if _has_key(payload, "threadBlocks", "thread_blocks"):
        return BlocksInput.model_validate(payload).to_thread_text()
    return ThreadTextInput.model_validate(payload)


class MessageBlock(ContractModel):
    index: int = Field(ge=1)
    text: str
    speaker: Speaker = "UNKNOWN"
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    speaker_label: str | None = None
