from pydantic import BaseModel, ConfigDict, Field

# Storage key -> (ButlerConfig field, default value)
CONFIG_KEYS: dict[str, tuple[str, int]] = {
    "LeadIn": ("lead_in", 120),
    "LeadOut": ("lead_out", 400),
    "SnapStartEarlier": ("snap_start_earlier", 350),
    "SnapStartLater": ("snap_start_later", 100),
    "SnapEndEarlier": ("snap_end_earlier", 300),
    "SnapEndLater": ("snap_end_later", 900),
    "Chain": ("chain_threshold", 620),
    "ChainGap": ("chain_gap", 0),
}

DEFAULTS: dict[str, int] = {key: default for key, (_, default) in CONFIG_KEYS.items()}

# Human-readable labels, shown by `timingbutler config show`
LABELS: dict[str, str] = {
    "LeadIn": "Lead In (if no snap) (ms)",
    "LeadOut": "Lead Out (if no snap) (ms)",
    "SnapStartEarlier": "Snap Start to Earlier Keyframe (ms)",
    "SnapStartLater": "Snap Start to Later Keyframe (ms)",
    "SnapEndEarlier": "Snap End to Earlier Keyframe (ms)",
    "SnapEndLater": "Snap End to Later Keyframe (ms)",
    "Chain": "Chain Adjacent Events (ms)",
    "ChainGap": "Chain Gap (frames)",
}

# Written to the project scope to mean "fall through to the local value"
PROJECT_FALLTHROUGH = -1


class ButlerConfig(BaseModel):
    """Resolved thresholds for one butler call. Milliseconds unless noted."""

    model_config = ConfigDict(frozen=True)

    lead_in: int = Field(default=120, ge=0)
    lead_out: int = Field(default=400, ge=0)
    snap_start_earlier: int = Field(default=350, ge=0)
    snap_start_later: int = Field(default=100, ge=0)
    snap_end_earlier: int = Field(default=300, ge=0)
    snap_end_later: int = Field(default=900, ge=0)
    chain_threshold: int = Field(default=620, ge=0)
    chain_gap: int = Field(default=0, ge=0, description="Gap after the previous event's end, in frames")

    @classmethod
    def from_keys(cls, values: dict[str, int]) -> "ButlerConfig":
        """Build from storage-keyed values (``{"LeadIn": 120, ...}``)."""
        return cls(**{CONFIG_KEYS[key][0]: value for key, value in values.items() if key in CONFIG_KEYS})
