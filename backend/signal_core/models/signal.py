"""Setup vote and composite signal models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from signal_core.models.snapshots import (
    AdxResult,
    AtrResult,
    BollingerResult,
    IchimokuResult,
    MacdResult,
    StochasticResult,
    SupportResistanceLevels,
)

AuxValue = float | int | str | bool | None


class Direction(str, Enum):
    """Directional bias of a vote or of the composite signal."""

    RISE = "RISE"
    FALL = "FALL"
    NEUTRAL = "NEUTRAL"

    @property
    def opposite(self) -> "Direction":
        if self is Direction.RISE:
            return Direction.FALL
        if self is Direction.FALL:
            return Direction.RISE
        return Direction.NEUTRAL


class Strength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"
    NONE = "NONE"


class CombinedLabel(str, Enum):
    """Final composite classification shown on the dashboard."""

    STRONG_RISE = "STRONG RISE"
    RISE = "RISE"
    WEAK_RISE = "WEAK RISE"
    NEUTRAL = "NEUTRAL"
    WEAK_FALL = "WEAK FALL"
    FALL = "FALL"
    STRONG_FALL = "STRONG FALL"


class TrapGrade(str, Enum):
    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"


class TradeLevels(BaseModel):
    """Entry/stop/target suggested by a graded pattern."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    entry: float
    stop: float
    target: float
    risk: float
    reward_multiple: float


class IndicatorSignal(BaseModel):
    """One setup's vote."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name: str
    direction: Direction = Direction.NEUTRAL
    confidence: int = Field(default=45, ge=0, le=100)
    detail: str = ""
    weight: float = 1.0
    is_strong_signal: bool | None = None
    aux_values: dict[str, AuxValue] = Field(default_factory=dict)
    grade: TrapGrade | None = None
    trade_levels: TradeLevels | None = None


class SignalResult(BaseModel):
    """Composite signal produced by one classification call."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    direction: Direction
    strength: Strength
    confidence: int = Field(ge=0, le=100)
    confidence_score: str
    combined_label: CombinedLabel
    votes: list[IndicatorSignal] = Field(default_factory=list)
    rise_count: int = 0
    fall_count: int = 0
    neutral_count: int = 0
    timestamp: int  # Wall-clock ms when computed; metadata only
    bar_timestamp: int | None = None
    bar_count: int = 0
    warmed_up: bool = True
    preset: str = "canonical"
    reason: str = ""

    # Derived indicator snapshots for display
    ichimoku: IchimokuResult | None = None
    support_resistance: SupportResistanceLevels = Field(
        default_factory=SupportResistanceLevels
    )
    stochastic: StochasticResult | None = None
    macd: MacdResult | None = None
    atr: AtrResult | None = None
    adx: AdxResult | None = None
    bollinger: BollingerResult | None = None
    ema21: float | None = None
    ema50: float | None = None
    rsi7: float | None = None

    @model_validator(mode="after")
    def _check_counts(self):
        if self.rise_count + self.fall_count + self.neutral_count != len(self.votes):
            raise ValueError(
                f"vote counts {self.rise_count}+{self.fall_count}+{self.neutral_count} "
                f"do not add up to {len(self.votes)} votes"
            )
        return self
