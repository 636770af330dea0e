"""
Pattern Learning Configuration

Centralizes every tuning constant of the recognition engine and the learning
manager so none of them is hard-coded at the call sites.

Values come from (highest precedence first):
  1. keyword overrides passed to ``from_env``
  2. environment variables (a ``.env`` file is loaded first)
  3. field defaults
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# field name -> environment variable
ENV_VARS: Dict[str, str] = {
    "sequence_weight": "PATTERN_SEQUENCE_WEIGHT",
    "connection_weight": "PATTERN_CONNECTION_WEIGHT",
    "match_threshold": "PATTERN_MATCH_THRESHOLD",
    "reinforcement_threshold": "PATTERN_REINFORCEMENT_THRESHOLD",
    "initial_confidence": "PATTERN_INITIAL_CONFIDENCE",
    "confidence_growth": "PATTERN_CONFIDENCE_GROWTH",
    "usage_floor": "PATTERN_USAGE_FLOOR",
    "min_success_rate_threshold": "PATTERN_MIN_SUCCESS_RATE",
    "max_patterns_to_store": "PATTERN_MAX_STORED",
    "max_linear_depth": "PATTERN_MAX_LINEAR_DEPTH",
    "enable_real_time_learning": "PATTERN_REAL_TIME_LEARNING",
}


class PatternLearningConfig(BaseModel):
    """
    Tuning knobs for similarity, novelty and learning.

    Attributes:
        sequence_weight: Weight of the LCS sequence similarity
        connection_weight: Weight of the Jaccard connection similarity
        match_threshold: Minimum similarity for a pattern to be reported as detected
        reinforcement_threshold: Minimum similarity for learning to reinforce
            an existing pattern instead of creating a new one
        initial_confidence: Confidence of a freshly created pattern
        confidence_growth: Fraction of the remaining gap to 1.0 closed per reinforcement
        usage_floor: Usage count at which the effectiveness usage factor reaches ~63%
        min_success_rate_threshold: Matched patterns below this success rate
            produce a warning recommendation
        max_patterns_to_store: Upper bound of patterns loaded from storage on initialize
        max_linear_depth: Depth beyond which splitting into sub-workflows is suggested
        enable_real_time_learning: When False, learning only analyzes
    """

    sequence_weight: float = Field(default=0.5, ge=0.0)
    connection_weight: float = Field(default=0.5, ge=0.0)
    match_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    reinforcement_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    initial_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    confidence_growth: float = Field(default=0.2, gt=0.0, le=1.0)
    usage_floor: float = Field(default=3.0, gt=0.0)
    min_success_rate_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    max_patterns_to_store: int = Field(default=1000, ge=1)
    max_linear_depth: int = Field(default=10, ge=1)
    enable_real_time_learning: bool = True

    @model_validator(mode="after")
    def _check_consistency(self) -> "PatternLearningConfig":
        if self.sequence_weight + self.connection_weight <= 0:
            raise ValueError("sequence_weight + connection_weight must be positive")
        if self.reinforcement_threshold < self.match_threshold:
            raise ValueError("reinforcement_threshold must be >= match_threshold")
        return self

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        **overrides: Any,
    ) -> "PatternLearningConfig":
        """
        Build configuration from environment variables.

        Args:
            env_file: Optional path of a .env file (default: search upwards from cwd)
            **overrides: Explicit values that win over the environment

        Returns:
            Validated PatternLearningConfig
        """
        load_dotenv(env_file)
        values: Dict[str, Any] = {}
        for field_name, env_var in ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()
        values.update(overrides)
        return cls(**values)
