"""
Lightweight learned classifier for phishing URLs.

A URL is mapped to a fixed 12-dimension feature vector and scored by a
small feed-forward network (one sigmoid hidden layer, sigmoid output). The
default network ships with hand-set weights that mirror the heuristic
scorer's intuition, so the signal is useful without a trained artifact; a
trained model can be loaded from a JSON file instead.

The probability is a supplementary signal and never the sole authority for
a verdict.
"""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .audit_logger import AuditLogger
from .enums import LogLevel
from .exceptions import ConfigError
from .url_parser import IPV4_PATTERN, parse_url

FEATURE_COUNT = 12

FEATURE_NAMES = (
    "url_length",        # href length / 100
    "domain_length",     # host length / 20
    "dot_count",
    "hyphen_count",
    "at_count",
    "is_ip",
    "digit_ratio",
    "domain_entropy",
    "path_length",       # (path + query) length / 50
    "keyword_count",
    "subdomain_count",
    "has_tld",
)

ML_KEYWORDS = ("login", "signin", "verify", "account", "update", "banking", "secure")


def shannon_entropy(text: str) -> float:
    """Shannon entropy in bits per character."""
    if not text:
        return 0.0
    length = len(text)
    counts: dict[str, int] = {}
    for char in text:
        counts[char] = counts.get(char, 0) + 1
    return -sum((count / length) * math.log2(count / length) for count in counts.values())


def extract_features(url: str) -> list[float]:
    """
    Extract the feature vector of a URL.

    Invalid or empty input yields the all-zero vector. Never raises.
    """
    if not url:
        return [0.0] * FEATURE_COUNT

    candidate = parse_url(url.lower())
    if not candidate.valid:
        return [0.0] * FEATURE_COUNT

    href = candidate.href
    domain = candidate.host
    path = candidate.path + (f"?{candidate.query}" if candidate.query else "")

    digit_count = sum(char.isdigit() for char in domain)
    dot_count = domain.count(".")

    return [
        len(href) / 100,
        len(domain) / 20,
        float(dot_count),
        float(domain.count("-")),
        float(url.count("@")),
        1.0 if IPV4_PATTERN.match(domain) else 0.0,
        digit_count / len(domain),
        shannon_entropy(domain),
        len(path) / 50,
        float(sum(1 for keyword in ML_KEYWORDS if keyword in href)),
        float(max(0, dot_count - 1)),
        1.0 if "." in domain else 0.0,
    ]


def _sigmoid(value: float) -> float:
    if value >= 0:
        return 1.0 / (1.0 + math.exp(-value))
    exp_value = math.exp(value)
    return exp_value / (1.0 + exp_value)


@dataclass
class NetworkWeights:
    """Weights of a one-hidden-layer network."""

    hidden_weights: list[list[float]]
    hidden_bias: list[float]
    output_weights: list[float]
    output_bias: float

    def validate(self) -> None:
        """
        Check the layer shapes.

        Raises:
            ConfigError: If any dimension is inconsistent
        """
        hidden_size = len(self.hidden_weights)
        if hidden_size == 0:
            raise ConfigError(code="invalid_model", message="Model has no hidden units")
        if any(len(row) != FEATURE_COUNT for row in self.hidden_weights):
            raise ConfigError(
                code="invalid_model",
                message=f"Every hidden unit needs {FEATURE_COUNT} input weights",
            )
        if len(self.hidden_bias) != hidden_size or len(self.output_weights) != hidden_size:
            raise ConfigError(
                code="invalid_model",
                message="Bias and output weights must match the hidden layer size",
            )


# Hidden units, one concept each:
#   0 raw IP host, 1 "@" in URL, 2 suspicious keywords, 3 hyphenated keyword
#   hosts, 4 digit-heavy hosts, 5 deep subdomains, 6 random-looking long
#   hosts, 7 long URLs/paths
DEFAULT_WEIGHTS = NetworkWeights(
    hidden_weights=[
        [0.0, 0.0, 0.0, 0.0, 0.0, 6.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 6.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 2.5, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.5, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 10.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.5, 0.0],
        [0.0, 1.5, 0.0, 0.0, 0.0, 0.0, 0.0, 2.0, 0.0, 0.0, 0.0, 0.0],
        [1.5, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.8, 0.0, 0.0, 0.0],
    ],
    hidden_bias=[-3.0, -3.0, -2.0, -2.5, -3.0, -3.5, -8.0, -4.0],
    output_weights=[3.0, 3.0, 2.5, 1.5, 1.5, 1.2, 1.2, 0.8],
    output_bias=-3.5,
)


class PhishingModel:
    """Feed-forward phishing classifier."""

    def __init__(self, weights: NetworkWeights = DEFAULT_WEIGHTS) -> None:
        weights.validate()
        self._weights = weights

    @classmethod
    def from_file(cls, model_path: Path) -> "PhishingModel":
        """
        Load a trained model from JSON.

        Expected keys: hidden_weights, hidden_bias, output_weights,
        output_bias.

        Raises:
            ConfigError: If the file is missing, unreadable or malformed
        """
        try:
            with open(model_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            weights = NetworkWeights(
                hidden_weights=[[float(w) for w in row] for row in data["hidden_weights"]],
                hidden_bias=[float(b) for b in data["hidden_bias"]],
                output_weights=[float(w) for w in data["output_weights"]],
                output_bias=float(data["output_bias"]),
            )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ConfigError(
                code="invalid_model",
                message=f"Failed to load model from {model_path}: {e}",
                details={"model_path": str(model_path)},
            )
        return cls(weights)

    @classmethod
    def load(
        cls,
        model_path: Optional[Path] = None,
        logger: Optional[AuditLogger] = None,
    ) -> "PhishingModel":
        """Load a trained model if one is present, else the default network."""
        if model_path is None or not Path(model_path).exists():
            return cls()
        try:
            return cls.from_file(Path(model_path))
        except ConfigError as e:
            if logger:
                logger.log(
                    LogLevel.WARN,
                    "PhishingModel",
                    "Falling back to default model",
                    {"reason": e.message},
                )
            return cls()

    def predict_features(self, features: Sequence[float]) -> float:
        """Run the network on a feature vector. Returns a 0-1 probability."""
        if len(features) != FEATURE_COUNT:
            raise ValueError(f"Expected {FEATURE_COUNT} features, got {len(features)}")

        hidden = [
            _sigmoid(sum(w * x for w, x in zip(row, features)) + bias)
            for row, bias in zip(self._weights.hidden_weights, self._weights.hidden_bias)
        ]
        output = sum(w * h for w, h in zip(self._weights.output_weights, hidden))
        return _sigmoid(output + self._weights.output_bias)

    def predict(self, url: str) -> float:
        """Phishing probability of a URL. Empty input scores 0."""
        if not url:
            return 0.0
        return self.predict_features(extract_features(url))
