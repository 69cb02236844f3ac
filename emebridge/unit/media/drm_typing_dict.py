from typing import Any, Literal, NotRequired, TypedDict


class MediaKeySystemMediaCapability(TypedDict):
    contentType: str
    robustness: NotRequired[str]
    encryptionScheme: NotRequired[str | None]


class MediaKeySystemConfiguration(TypedDict, total=False):
    label: str
    initDataTypes: list[str]
    audioCapabilities: list[MediaKeySystemMediaCapability]
    videoCapabilities: list[MediaKeySystemMediaCapability]
    distinctiveIdentifier: Literal["required", "optional", "not-allowed"]
    persistentState: Literal["required", "optional", "not-allowed"]
    sessionTypes: list[str]


CredentialsMode = Literal["omit", "same-origin", "include"]


class FetchInit(TypedDict, total=False):
    method: str
    headers: dict[str, str]
    body: bytes | str | None
    credentials: CredentialsMode


class DeviceInfo(TypedDict):
    modelName: str
    platform: str
    sdkVersion: str
    deviceId: str


class ServiceResponse(TypedDict):
    returnValue: bool
    data: dict[str, Any]
