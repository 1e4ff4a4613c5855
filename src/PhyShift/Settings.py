#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyShift --
##  Library for Branch Event Histories on Phylogenetic Trees
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Author : Mark Kessler
Last Edit : 10/16/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]

Run settings. A control file is a plain text file of 'key = value' lines;
anything after a '#' is a comment.

IE:
    treefile = whales.tre
    poissonRatePrior = 1.0   # expect one event a priori
    updateEventLocationScale = 0.05
"""

from __future__ import annotations
import logging
import warnings
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """
    This exception is raised when a control file cannot be read, or a setting
    has a value that cannot be used.
    """
    def __init__(self, message : str = "Invalid settings") -> None:
        self.message = message
        super().__init__(self.message)


def _optional_str(value : Any) -> str:
    if value is None:
        return None
    value = str(value).strip()
    if value == "" or value.lower() == "none":
        return None
    return value

def _optional_int(value : Any) -> int:
    value = _optional_str(value)
    return None if value is None else int(value)

def _positive_float(value : Any) -> float:
    value = float(value)
    if value <= 0:
        raise ValueError("must be greater than 0")
    return value

def _non_negative_float(value : Any) -> float:
    value = float(value)
    if value < 0:
        raise ValueError("must not be negative")
    return value

def _positive_int(value : Any) -> int:
    value = int(value)
    if value <= 0:
        raise ValueError("must be greater than 0")
    return value


# key : (default, converter)
DEFAULTS : dict[str, tuple[Any, Callable[[Any], Any]]] = {
    "treefile" : (None, _optional_str),
    "eventDataInfile" : (None, _optional_str),
    "seed" : (None, _optional_int),
    "numberOfGenerations" : (1000, _positive_int),
    "poissonRatePrior" : (1.0, _positive_float),
    "updateEventLocationScale" : (0.05, _positive_float),
    "updateEventRateScale" : (4.0, _positive_float),
    "localGlobalMoveRatio" : (10.0, _non_negative_float),
    "updateRateEventNumber" : (1.0, _non_negative_float),
    "updateRateEventPosition" : (1.0, _non_negative_float),
    "updateRateEventRate" : (1.0, _non_negative_float),
}


class Settings:
    """
    Holds every run setting, validated and converted to its proper type.
    """

    def __init__(self, values : dict[str, Any] = None) -> None:
        """
        Initialize settings from a mapping of keys to values. Missing keys
        take their default value.

        Args:
            values (dict[str, Any], optional): setting overrides.
                                               Defaults to None.
        Raises:
            SettingsError: if a value cannot be converted.
        Returns:
            N/A
        """
        self.values : dict[str, Any] = {key : default for key, (default, _)
                                        in DEFAULTS.items()}
        for key, value in (values or {}).items():
            self.set(key, value)

    @classmethod
    def from_file(cls, filename : str) -> Settings:
        """
        Read settings from a control file.

        Args:
            filename (str): path to the control file.
        Raises:
            SettingsError: if the file cannot be opened, or a line is not of
                           the form 'key = value'.
        Returns:
            Settings: the parsed settings.
        """
        try:
            with open(filename) as handle:
                lines = handle.readlines()
        except OSError as err:
            raise SettingsError(f"<<{filename}>> is a bad file name") from err

        values : dict[str, str] = {}
        for line_no, line in enumerate(lines, start = 1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            if "=" not in line:
                raise SettingsError(f"{filename}, line {line_no}: expected "
                                    f"'key = value', got '{line}'")
            key, value = (part.strip() for part in line.split("=", 1))
            values[key] = value

        logger.info("Read %d settings from <<%s>>", len(values), filename)
        return cls(values)

    def set(self, key : str, value : Any) -> None:
        if key not in DEFAULTS:
            warnings.warn(f"Ignoring unknown setting '{key}'")
            return
        try:
            self.values[key] = DEFAULTS[key][1](value)
        except (TypeError, ValueError) as err:
            raise SettingsError(f"Invalid value {value!r} for setting "
                                f"'{key}': {err}") from err

    def get(self, key : str) -> Any:
        if key not in self.values:
            raise SettingsError(f"Unknown setting '{key}'")
        return self.values[key]

    def get_tree_file_name(self) -> str:
        return self.values["treefile"]

    def get_event_data_infile(self) -> str:
        return self.values["eventDataInfile"]

    def get_seed(self) -> int:
        return self.values["seed"]

    def get_number_of_generations(self) -> int:
        return self.values["numberOfGenerations"]

    def get_poisson_rate_prior(self) -> float:
        return self.values["poissonRatePrior"]

    def get_update_event_location_scale(self) -> float:
        return self.values["updateEventLocationScale"]

    def get_update_event_rate_scale(self) -> float:
        return self.values["updateEventRateScale"]

    def get_local_global_move_ratio(self) -> float:
        return self.values["localGlobalMoveRatio"]

    def get_update_rate_event_number(self) -> float:
        return self.values["updateRateEventNumber"]

    def get_update_rate_event_position(self) -> float:
        return self.values["updateRateEventPosition"]

    def get_update_rate_event_rate(self) -> float:
        return self.values["updateRateEventRate"]
