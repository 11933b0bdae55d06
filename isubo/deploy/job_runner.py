"""
job_runner.py — Ejecuta jobs async con concurrencia y timeout acotados.

Reglas:
- Como máximo `max_concurrency` jobs en vuelo a la vez.
- Se arrancan en el orden de la lista; pueden terminar en cualquiera.
- Un job que tarda más de `timeout` segundos se da por fallido con
  JobTimeoutError. Solo se deja de esperarlo: si por debajo hay un
  request o un proceso en curso, sigue hasta terminar.
- El fallo de un job no cancela ni bloquea a los demás.
- run_jobs() nunca lanza por culpa de un job: devuelve un JobOutcome
  por cada uno, en el orden de entrada.

Uso:
    outcomes = await run_jobs([lambda: deploy(a), lambda: deploy(b)])
    for outcome in outcomes:
        if outcome.ok:
            print(outcome.value)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from isubo.errors import JobTimeoutError
from isubo.utils.logger import get_logger

logger = get_logger("isubo.runner")

DEFAULT_MAX_CONCURRENCY = 6
DEFAULT_TIMEOUT = 10.0

Job = Callable[[], Awaitable[Any]]


@dataclass
class JobOutcome:
    """Cómo terminó un job: con valor o con error."""
    index: int
    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_jobs(
    jobs: Sequence[Job],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[JobOutcome]:
    """
    Ejecuta todos los jobs y espera a que cada uno termine.

    Args:
        jobs: Funciones sin argumentos que devuelven un awaitable
        max_concurrency: Jobs simultáneos como máximo
        timeout: Segundos máximos por job (cuenta desde que arranca,
            no desde que entra a la cola)

    Returns:
        Un JobOutcome por job, en el mismo orden que `jobs`.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency debe ser >= 1")

    semaforo = asyncio.Semaphore(max_concurrency)

    async def ejecutar(index: int, job: Job) -> JobOutcome:
        async with semaforo:
            try:
                valor = await asyncio.wait_for(job(), timeout=timeout)
            except asyncio.TimeoutError:
                error = JobTimeoutError(index, timeout)
                logger.warning(str(error))
                return JobOutcome(index=index, error=error)
            except Exception as e:
                logger.debug(f"Job #{index} falló: {e}")
                return JobOutcome(index=index, error=e)
            return JobOutcome(index=index, value=valor)

    tareas = [asyncio.ensure_future(ejecutar(i, job)) for i, job in enumerate(jobs)]
    if not tareas:
        return []
    return list(await asyncio.gather(*tareas))
