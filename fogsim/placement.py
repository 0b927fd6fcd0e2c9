#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Static assignment of application modules to devices.

A module is pinned to exactly one device for the whole run. The mapping is
built before the application is submitted and becomes read-only once the
controller accepts it.
"""

from typing import Dict, ItemsView, List, Mapping, Optional

from fogsim.errors import ConfigurationError, DuplicatePlacement

__all__ = ["PlacementMapping"]


class PlacementMapping:
    """Maps module names to device names."""

    _placements: Dict[str, str]
    _frozen: bool

    def __init__(self, placements: Optional[Mapping[str, str]] = None):
        self._placements = {}
        self._frozen = False
        for module, device in (placements or {}).items():
            self.add(module, device)

    def add(self, module: str, device: str) -> None:
        """Places ``module`` onto ``device``.

        Raises:
            DuplicatePlacement: if the module is already placed.
            ConfigurationError: if the mapping was already submitted.
        """
        if self._frozen:
            raise ConfigurationError("The placement mapping was submitted and is read-only")
        if module in self._placements:
            raise DuplicatePlacement(module, self._placements[module], device)
        self._placements[module] = device

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def device_for(self, module: str) -> Optional[str]:
        """Returns the device name of ``module``, or None if it is not placed."""
        return self._placements.get(module)

    def modules_on(self, device: str) -> List[str]:
        return [module for module, name in self._placements.items() if name == device]

    def items(self) -> ItemsView[str, str]:
        return self._placements.items()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._placements)

    def __contains__(self, module: str) -> bool:
        return module in self._placements

    def __len__(self):
        return len(self._placements)

    def __str__(self):
        return f"PlacementMapping<{self._placements}>"
