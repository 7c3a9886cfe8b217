"""
Value transformations applied to mapped fields.
"""

import logging
import re
from datetime import date, datetime
from numbers import Number
from typing import Any, Callable, Dict, List, Optional

from .paths import UNSET

logger = logging.getLogger(__name__)

TransformFn = Callable[[Any, Dict[str, Any]], Any]
CustomFn = Callable[[Any, Dict[str, Any]], Any]

# strftime patterns for the numeric short date of each supported locale
LOCALE_DATE_FORMATS: Dict[str, str] = {
    "en-US": "%-m/%-d/%Y",
    "en-GB": "%d/%m/%Y",
    "en-CA": "%Y-%m-%d",
    "de-DE": "%-d.%-m.%Y",
    "fr-FR": "%d/%m/%Y",
    "es-ES": "%-d/%-m/%Y",
    "it-IT": "%-d/%-m/%Y",
    "nl-NL": "%-d-%-m-%Y",
    "pt-BR": "%d/%m/%Y",
    "ja-JP": "%Y/%-m/%-d",
    "zh-CN": "%Y/%-m/%-d",
    "sv-SE": "%Y-%m-%d",
}

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


def is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings and date/datetime objects; None if unparseable."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


class TransformationService:
    """
    Registry of named value transformations and custom functions.

    Transformations are pure and degrade gracefully: an unknown name or a
    failing transformation logs and returns the input unchanged.
    """

    def __init__(self):
        self.transformations: Dict[str, TransformFn] = {
            "string.uppercase": self._uppercase,
            "string.lowercase": self._lowercase,
            "string.trim": self._trim,
            "string.replace": self._replace,
            "number.format": self._number_format,
            "number.multiply": self._number_multiply,
            "date.format": self._date_format,
            "value.map": self._value_map,
        }
        self.functions: Dict[str, CustomFn] = {
            "formatPhoneNumber": lambda value, params: self.format_phone_number(value),
            "calculateTax": lambda value, params: self.calculate_tax(value, params.get("rate")),
            "concatenate": lambda value, params: self.concatenate(
                value, params.get("prefix", ""), params.get("suffix", "")
            ),
        }

    def register_transformation(self, name: str, fn: TransformFn) -> None:
        self.transformations[name] = fn
        logger.info(f"Registered transformation: {name}")

    def register_function(self, name: str, fn: CustomFn) -> None:
        self.functions[name] = fn
        logger.info(f"Registered custom function: {name}")

    def list_transformations(self) -> List[str]:
        return sorted(self.transformations)

    def list_functions(self) -> List[str]:
        return sorted(self.functions)

    def apply_transformation(self, value: Any, transformation_type: str, config: Optional[Dict[str, Any]] = None) -> Any:
        """
        Apply a named transformation to a value.

        Args:
            value: The value to transform
            transformation_type: Registered transformation name, e.g. "string.trim"
            config: Transformation-specific options

        Returns:
            Transformed value, or the input value if the transformation is
            unknown or fails
        """
        transform = self.transformations.get(transformation_type)
        if transform is None:
            logger.warning(f"Unknown transformation type: {transformation_type}")
            return value

        try:
            return transform(value, config or {})
        except Exception as e:
            logger.error(f"Transformation '{transformation_type}' failed for value '{value}': {e}")
            return value

    def apply_pipeline(self, value: Any, steps: List[Any]) -> Any:
        """Apply transformation steps in order, feeding each output to the next."""
        for step in steps:
            value = self.apply_transformation(value, step.type, step.config)
        return value

    def execute_function(self, function_name: str, value: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a registered custom function; unknown names return the value unchanged."""
        fn = self.functions.get(function_name)
        if fn is None:
            logger.warning(f"Unknown function: {function_name}")
            return value

        try:
            return fn(value, params or {})
        except Exception as e:
            logger.error(f"Error executing function {function_name}: {e}")
            return value

    # Transformations

    @staticmethod
    def _uppercase(value: Any, config: Dict[str, Any]) -> Any:
        return value.upper() if isinstance(value, str) else value

    @staticmethod
    def _lowercase(value: Any, config: Dict[str, Any]) -> Any:
        return value.lower() if isinstance(value, str) else value

    @staticmethod
    def _trim(value: Any, config: Dict[str, Any]) -> Any:
        return value.strip() if isinstance(value, str) else value

    @staticmethod
    def _replace(value: Any, config: Dict[str, Any]) -> Any:
        search = config.get("search")
        replacement = config.get("replacement")
        if not isinstance(value, str) or not search or replacement is None:
            return value

        flags_spec = config.get("flags") or "g"
        flags = 0
        for flag in flags_spec:
            flags |= _REGEX_FLAGS.get(flag, 0)
        count = 0 if "g" in flags_spec else 1

        return re.sub(search, replacement, value, count=count, flags=flags)

    @staticmethod
    def _number_format(value: Any, config: Dict[str, Any]) -> Any:
        if not is_number(value):
            return value
        decimals = config.get("decimals")
        decimals = 2 if decimals is None else int(decimals)
        return f"{value:.{decimals}f}"

    @staticmethod
    def _number_multiply(value: Any, config: Dict[str, Any]) -> Any:
        factor = config.get("factor")
        if is_number(value) and is_number(factor):
            return value * factor
        return value

    @staticmethod
    def _date_format(value: Any, config: Dict[str, Any]) -> Any:
        parsed = parse_date(value)
        if parsed is None:
            return value

        pattern = config.get("format")
        if not pattern:
            locale = config.get("locale") or "en-US"
            pattern = LOCALE_DATE_FORMATS.get(locale)
            if pattern is None:
                logger.warning(f"No date format for locale {locale}, using en-US")
                pattern = LOCALE_DATE_FORMATS["en-US"]

        # %-d style directives are platform specific; strip the padding ourselves
        unpadded = pattern.replace("%-d", str(parsed.day)).replace("%-m", str(parsed.month))
        return parsed.strftime(unpadded)

    @staticmethod
    def _value_map(value: Any, config: Dict[str, Any]) -> Any:
        mapping = config.get("mapping") or {}
        if value is not UNSET:
            try:
                if value in mapping:
                    return mapping[value]
            except TypeError:
                pass  # unhashable values cannot be map keys
            key = str(value)
            if key in mapping:
                return mapping[key]
        if "defaultValue" in config and config["defaultValue"] is not None:
            return config["defaultValue"]
        return value

    # Custom functions

    @staticmethod
    def format_phone_number(phone: Any) -> Any:
        """Format a 10-digit number as (XXX) XXX-XXXX; anything else passes through."""
        if not phone or not isinstance(phone, str):
            return phone

        digits = re.sub(r"\D", "", phone)
        if len(digits) == 10:
            return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
        return phone

    @staticmethod
    def calculate_tax(amount: Any, rate: Optional[float] = None) -> Any:
        if not is_number(amount):
            return amount
        rate = 0.1 if rate is None else rate
        return amount * (1 + rate)

    @staticmethod
    def concatenate(value: Any, prefix: str = "", suffix: str = "") -> str:
        if value is UNSET or value is None:
            value = ""
        elif not isinstance(value, str):
            value = str(value)
        return f"{prefix or ''}{value}{suffix or ''}"
