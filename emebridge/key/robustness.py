from __future__ import annotations

import copy
from collections.abc import Iterable, Sequence
from typing import Any

from emebridge.unit.media.drm_typing_dict import MediaKeySystemConfiguration, MediaKeySystemMediaCapability

ROBUSTNESS_LEVELS: tuple[str, ...] = (
    "HW_SECURE_ALL",
    "HW_SECURE_CRYPTO",
    "HW_SECURE_DECODE",
    "SW_SECURE_DECODE",
    "SW_SECURE_CRYPTO",
    "",
)

DEFAULT_VIDEO_CONTENT_TYPE = 'video/mp4; codecs="avc1.42E01E"'
DEFAULT_AUDIO_CONTENT_TYPE = 'audio/mp4; codecs="mp4a.40.2"'


def default_configuration(
    video_content_type: str = DEFAULT_VIDEO_CONTENT_TYPE,
    audio_content_type: str = DEFAULT_AUDIO_CONTENT_TYPE,
    init_data_types: Iterable[str] = ("cenc", "webm"),
) -> MediaKeySystemConfiguration:
    return {
        "initDataTypes": list(init_data_types),
        "audioCapabilities": [{"contentType": audio_content_type}],
        "videoCapabilities": [{"contentType": video_content_type}],
        "persistentState": "optional",
        "distinctiveIdentifier": "optional",
    }


class CandidateGenerator:
    """
    Expands requested configurations into robustness variants.

    Output order is template first, then robustness level in the order given,
    most restrictive first. An empty level removes ``robustness`` from every
    video capability. Templates are deep-copied and never modified.
    """

    def __init__(
        self,
        robustness_levels: Sequence[str] = ROBUSTNESS_LEVELS,
        default: MediaKeySystemConfiguration | None = None,
    ) -> None:
        self.robustness_levels: tuple[str, ...] = tuple(dict.fromkeys(robustness_levels))
        self.default: MediaKeySystemConfiguration = default if default is not None else default_configuration()

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> CandidateGenerator:
        neg = cfg["negotiation"]
        return cls(
            robustness_levels=neg["robustness"],
            default=default_configuration(
                neg["default_video_content_type"],
                neg["default_audio_content_type"],
                neg["default_init_data_types"],
            ),
        )

    def _video_default(self) -> list[MediaKeySystemMediaCapability]:
        return copy.deepcopy(self.default.get("videoCapabilities") or [{"contentType": DEFAULT_VIDEO_CONTENT_TYPE}])

    def _with_video(self, template: MediaKeySystemConfiguration) -> MediaKeySystemConfiguration:
        base = copy.deepcopy(template)
        if not base.get("videoCapabilities"):
            base["videoCapabilities"] = self._video_default()
        return base

    @staticmethod
    def _tag(base: MediaKeySystemConfiguration, robustness: str) -> MediaKeySystemConfiguration:
        candidate = copy.deepcopy(base)
        tagged: list[MediaKeySystemMediaCapability] = []
        for capability in candidate["videoCapabilities"]:
            capability = dict(capability)
            if robustness:
                capability["robustness"] = robustness
            else:
                capability.pop("robustness", None)
            tagged.append(capability)
        candidate["videoCapabilities"] = tagged
        return candidate

    def generate(self, base_configurations: Sequence[MediaKeySystemConfiguration] | None) -> list[MediaKeySystemConfiguration]:
        templates = list(base_configurations or []) or [self.default]
        candidates: list[MediaKeySystemConfiguration] = []
        for template in templates:
            base = self._with_video(template)
            for robustness in self.robustness_levels:
                candidates.append(self._tag(base, robustness))
        return candidates


def generate(
    base_configurations: Sequence[MediaKeySystemConfiguration] | None,
    robustness_levels: Sequence[str] = ROBUSTNESS_LEVELS,
    default: MediaKeySystemConfiguration | None = None,
) -> list[MediaKeySystemConfiguration]:
    return CandidateGenerator(robustness_levels, default).generate(base_configurations)
