"""Factory mapping application family names to topology builders."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Type

import numpy as np

from wfsynth.errors import ConfigurationError
from wfsynth.utils import get_logger
from wfsynth.utils.workflow_family import infer_workflow_family
from wfsynth.workflows.base import Application
from wfsynth.workflows.cybershake import Cybershake
from wfsynth.workflows.genome import Genome
from wfsynth.workflows.ligo import Ligo
from wfsynth.workflows.montage import Montage
from wfsynth.workflows.sipht import Sipht
from wfsynth.workflows.variant_calling import VariantCalling

logger = get_logger(__name__, logging.INFO)

APPLICATIONS: Dict[str, Type[Application]] = {
    "cybershake": Cybershake,
    "genome": Genome,
    "ligo": Ligo,
    "montage": Montage,
    "sipht": Sipht,
    "variant_calling": VariantCalling,
}


def available_families() -> List[str]:
    return list(APPLICATIONS)


def get_application_class(name: str) -> Type[Application]:
    family = infer_workflow_family(name)
    try:
        return APPLICATIONS[family]
    except KeyError:
        raise ConfigurationError(
            f"Unknown workflow family: {name}. Available: {available_families()}") from None


def create_application(name: str, rng: Optional[np.random.Generator] = None) -> Application:
    """Return a fresh builder for `name`; any family alias is accepted."""
    cls = get_application_class(name)
    logger.debug("Creating %s builder for '%s'", cls.__name__, name)
    return cls(rng)


__all__ = ["APPLICATIONS", "available_families", "get_application_class", "create_application"]
