"""
Application configuration for linkaudit.

Provides environment-aware settings with conservative defaults. Every scoring
threshold is configurable; a ScoringConfig is validated once at the start of a
run and is frozen for the rest of it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_ATTRIBUTES: Tuple[str, ...] = (
	"department",
	"position",
	"role",
	"programming_language",
	"agilestruct",
)


class ScoringConfig(BaseModel):
	"""
	Threshold set governing one scoring run.

	Peer-group path:
	- policy: which similarity policy builds peer groups ('exact', 'match_count', 'weighted').
	- min_support: a relation is flagged only when its support ratio is strictly below this.
	- min_similar: peer groups smaller than this are not trusted.
	- min_match_count / min_common_weight: peer thresholds for the two pairwise policies.
	- attribute_weights: overrides of the default weight 1 per attribute.

	Temporal path:
	- lookback_days: width of the trailing window ending at the run's as-of time.
	- bucket_hours: width of one history bucket; the newest bucket is the one scored.
	- baseline_key: what distinguishes one observation from another.
	- baseline_std: population or sample standard deviation.
	- z_threshold / min_degree: flagging threshold and minimum in-window history.
	"""

	model_config = ConfigDict(frozen=True)

	attributes: Tuple[str, ...] = Field(DEFAULT_ATTRIBUTES, min_length=1)
	policy: Literal["exact", "match_count", "weighted"] = "match_count"

	min_support: float = Field(0.10, gt=0.0, le=1.0, description="Exclusive upper bound on support ratio")
	min_similar: int = Field(3, ge=1, description="Minimum peer-group size")
	min_match_count: int = Field(3, ge=1, description="Matching attributes needed to be peers")
	min_common_weight: int = Field(4, ge=1, description="Summed weight needed to be peers")
	attribute_weights: Dict[str, int] = Field(default_factory=dict)

	lookback_days: int = Field(30, ge=1, description="Temporal window width in days")
	bucket_hours: int = Field(24, ge=1, description="History bucket width in hours")
	baseline_key: Literal["type", "target", "type_target"] = "type"
	baseline_std: Literal["population", "sample"] = "population"
	z_threshold: float = Field(3.0, gt=0.0, description="Minimum |z| to flag")
	min_degree: int = Field(10, ge=1, description="Minimum in-window relations")

	@field_validator("attributes")
	@classmethod
	def _check_attribute_names(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
		if any(not name or not name.strip() for name in value):
			raise ValueError("attribute names must be non-empty")
		if len(set(value)) != len(value):
			raise ValueError("attribute names must be unique")
		return value

	@model_validator(mode="after")
	def _check_cross_field_limits(self) -> "ScoringConfig":
		unknown = sorted(set(self.attribute_weights) - set(self.attributes))
		if unknown:
			raise ValueError(f"weights given for unknown attributes: {unknown}")
		bad = sorted(name for name, weight in self.attribute_weights.items() if weight <= 0)
		if bad:
			raise ValueError(f"attribute weights must be positive: {bad}")
		if self.min_match_count > len(self.attributes):
			raise ValueError(
				f"min_match_count={self.min_match_count} exceeds the {len(self.attributes)} configured attributes"
			)

		window_hours = self.lookback_days * 24
		if window_hours % self.bucket_hours:
			raise ValueError(f"bucket_hours={self.bucket_hours} does not divide a {window_hours}h window")
		needed = 2 if self.baseline_std == "sample" else 1
		if self.history_buckets < needed:
			raise ValueError(f"window holds {self.history_buckets} history buckets, need at least {needed}")
		return self

	def weight_for(self, attribute: str) -> int:
		return self.attribute_weights.get(attribute, 1)

	@property
	def weights(self) -> Dict[str, int]:
		"""Weight of every configured attribute, defaults filled in."""
		return {name: self.weight_for(name) for name in self.attributes}

	@property
	def bucket_count(self) -> int:
		return (self.lookback_days * 24) // self.bucket_hours

	@property
	def history_buckets(self) -> int:
		# Bucket 0 is the evaluation bucket; the rest form the baseline.
		return self.bucket_count - 1


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.

	Nested scoring options use a double underscore, e.g.
	LINKAUDIT_SCORING__MIN_SUPPORT=0.2.
	"""

	model_config = SettingsConfigDict(
		env_prefix="LINKAUDIT_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	scoring: ScoringConfig = ScoringConfig()

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)


def validate_scoring(
	scoring: Union[ScoringConfig, Mapping[str, Any], None] = None,
) -> ScoringConfig:
	"""
	Validate a scoring configuration before any computation begins.

	Accepts a ScoringConfig (re-checked, so instances built with
	model_construct are caught too), a plain mapping, or None for the global
	default. Raises ConfigurationError on any violation.
	"""

	if scoring is None:
		scoring = config.scoring
	data = scoring.model_dump() if isinstance(scoring, ScoringConfig) else dict(scoring)
	try:
		return ScoringConfig.model_validate(data)
	except ValidationError as exc:
		raise ConfigurationError(f"Invalid scoring configuration: {exc}") from exc


def load_scoring_config(base: Optional[ScoringConfig] = None, **overrides: Any) -> ScoringConfig:
	"""Build a validated ScoringConfig from a base (global default if None) plus overrides."""

	base = base or config.scoring
	return validate_scoring({**base.model_dump(), **overrides})


config = Config()
