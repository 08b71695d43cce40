"""
Formatting options and presets

Each boolean flag gates one rule family, both when issues are detected and
when fixes are applied. Options can be built in code, picked from the named
presets, or loaded from a YAML file:

    preset: minimal
    fix_spacing: false
    target_pattern: inline-brackets
"""

from dataclasses import dataclass, fields, replace, asdict
from pathlib import Path
from typing import Dict, Union

import yaml

from .errors import OptionsError
from .models import ChordPattern


@dataclass(frozen=True)
class FormattingOptions:
    """Engine configuration; every rule family is on by default"""
    target_pattern: ChordPattern = ChordPattern.INLINE_BRACKETS
    remove_extra_blank_lines: bool = True
    align_chords: bool = True
    fix_spacing: bool = True
    auto_label_sections: bool = True
    standardize_chords: bool = True
    extract_metadata: bool = True

    @classmethod
    def preset(cls, name: str) -> 'FormattingOptions':
        """Look up a named preset ('standard', 'minimal', 'aggressive')"""
        try:
            return PRESETS[name.lower()]
        except KeyError:
            raise OptionsError(
                f"Unknown preset '{name}' (expected one of: {', '.join(sorted(PRESETS))})"
            ) from None

    @classmethod
    def from_dict(cls, data: Dict) -> 'FormattingOptions':
        """Build options from a mapping of flag overrides on top of an optional preset"""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise OptionsError(f"Options must be a mapping, got {type(data).__name__}")

        data = dict(data)
        base = cls.preset(str(data.pop('preset'))) if 'preset' in data else cls()

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise OptionsError(f"Unknown option(s): {', '.join(unknown)}")

        overrides = {}
        for name, value in data.items():
            if name == 'target_pattern':
                try:
                    overrides[name] = ChordPattern(value)
                except ValueError:
                    raise OptionsError(f"Unknown chord pattern '{value}'") from None
            elif isinstance(value, bool):
                overrides[name] = value
            else:
                raise OptionsError(f"Option '{name}' must be true or false, got {value!r}")

        return replace(base, **overrides)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> 'FormattingOptions':
        """Parse options from YAML content"""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise OptionsError(f"Invalid options YAML: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['target_pattern'] = self.target_pattern.value
        return data

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @property
    def any_enabled(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self) if f.name != 'target_pattern')


STANDARD = FormattingOptions()

MINIMAL = FormattingOptions(
    target_pattern=ChordPattern.CHORD_OVER_LYRIC,
    remove_extra_blank_lines=True,
    align_chords=False,
    fix_spacing=True,
    auto_label_sections=False,
    standardize_chords=False,
    extract_metadata=False,
)

# Same flags as standard; kept separate so it can diverge as rule families are added
AGGRESSIVE = FormattingOptions(
    target_pattern=ChordPattern.INLINE_BRACKETS,
    remove_extra_blank_lines=True,
    align_chords=True,
    fix_spacing=True,
    auto_label_sections=True,
    standardize_chords=True,
    extract_metadata=True,
)

PRESETS = {
    'standard': STANDARD,
    'minimal': MINIMAL,
    'aggressive': AGGRESSIVE,
}


def load_options(path: Union[str, Path]) -> FormattingOptions:
    """Load options from a YAML file"""
    with open(path, 'r', encoding='utf-8') as f:
        return FormattingOptions.from_yaml(f.read())
