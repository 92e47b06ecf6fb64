"""eligibility.py — the seam between product selection and job definitions.

Whether a data product gets a job (release status, QC outcome, customer
configuration, ...) is decided by the caller.  This module only fixes the
shape of that decision and turns its result into function definitions:

* one definition per eligible product, carrying the product's composition;
* a single excluded placeholder when no product qualifies.

The driver never calls into this module.
"""
from __future__ import annotations

__all__ = ["Product", "EligibilityOracle", "create_definitions"]

import logging
from typing import Callable, Iterable, Protocol

from wr_scheduler.composition import Composition
from wr_scheduler.definition import FunctionDefinition

logger = logging.getLogger(__name__)


class Product(Protocol):
    """Anything addressing a subset of run data."""

    composition: Composition


class EligibilityOracle(Protocol):
    """Decides whether a product should get a job for a function."""

    def is_eligible(self, product: Product) -> bool:
        ...


def create_definitions(
    function_name: str,
    products: Iterable[Product],
    oracle: EligibilityOracle,
    command_for: Callable[[Product], str],
    *,
    identifier: int | str,
    created_on: str,
    **resources,
) -> list[FunctionDefinition]:
    """Return per-product definitions for *function_name*.

    Parameters
    ----------
    products:
        Candidate products, in the order their jobs should be numbered.
    oracle:
        Eligibility predicate supplied by the caller.
    command_for:
        Builds the job command for one eligible product.
    identifier:
        Run identifier.
    created_on:
        Timestamp shared by all definitions of the run.
    **resources:
        Extra :class:`~wr_scheduler.definition.FunctionDefinition` fields
        (``cpu_count``, ``memory_mb``, ``queue``) applied to every job.

    Job names are ``<function>_<run>_<i>`` with ``i`` counting eligible
    products only.
    """
    definitions: list[FunctionDefinition] = []
    for product in products:
        if not oracle.is_eligible(product):
            logger.debug("%s: skipping %s", function_name, product.composition)
            continue
        definitions.append(
            FunctionDefinition(
                identifier=identifier,
                created_by=function_name,
                created_on=created_on,
                job_name=f"{function_name}_{identifier}_{len(definitions)}",
                command=command_for(product),
                composition=product.composition,
                **resources,
            )
        )

    if not definitions:
        logger.info("%s: no eligible products for run %s", function_name, identifier)
        definitions.append(
            FunctionDefinition(
                identifier=identifier,
                created_by=function_name,
                created_on=created_on,
                excluded=True,
            )
        )
    return definitions
