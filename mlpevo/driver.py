"""Threaded evolution driver: state machine and generation cycle.

Each generation is evaluated on a thread pool. Worker completion callbacks
count finished tasks under a lock; the driver thread waits for the count to
reach the population size, then persists the generation and either breeds the
next one or stops.
"""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from functools import partial
from random import Random

from .config import EvolutionConfig
from .errors import GenerationError, StateError
from .evaluator import FitnessEvaluator, FitnessFunction
from .genome import Genome
from .persistence import Checkpoint, Storage
from .population import Individual, Population
from .reporters import EventLogger
from .reproduction import breed_next_generation

StopCallback = Callable[[], None]


class DriverState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


def default_workers() -> int:
    return (os.cpu_count() or 1) + 1


class _GenerationTracker:
    """Lock-protected completion counter for one generation."""

    def __init__(self, population: Population) -> None:
        self.population = population
        self.completed = 0
        self.errors: list[BaseException] = []
        self.done = threading.Event()
        self._lock = threading.Lock()

    def task_done(self, individual: Individual, future: Future[Individual]) -> None:
        error = future.exception()
        if error is not None and not individual.evaluated:
            individual.record_failure(error)
        with self._lock:
            self.completed += 1
            if individual.error is not None:
                self.errors.append(individual.error)
            if self.completed == len(self.population):
                self.done.set()


class EvolutionDriver:
    """Runs generations until stopped, a generation fails or the limit is hit."""

    def __init__(
        self,
        fitness: FitnessFunction,
        storage: Storage,
        config: EvolutionConfig,
        *,
        rng: Random | None = None,
        logger: EventLogger | None = None,
        initial_population: Sequence[Individual | Genome] | None = None,
        workers: int | None = None,
        on_error: Callable[[GenerationError], None] | None = None,
        on_generation: Callable[[Population], None] | None = None,
    ) -> None:
        if workers is not None and workers <= 0:
            msg = "workers must be positive."
            raise ValueError(msg)
        self.config = config
        self.storage = storage
        self.evaluator = FitnessEvaluator(
            fitness,
            input_names=config.input_names,
            output_names=config.output_names,
            learning_rate=config.learning_rate,
        )
        self.rng = rng or Random(config.seed)
        self.logger = logger
        self.workers = workers or default_workers()
        self.on_error = on_error
        self.on_generation = on_generation
        self._initial_population = list(initial_population or ())
        self._population_config = config.population_config()
        self._reproduction_config = config.reproduction_config()

        self._lock = threading.Lock()
        self._state = DriverState.STOPPED
        self._stopped = threading.Event()
        self._stopped.set()
        self._stop_callbacks: list[StopCallback] = []
        self._population: Population | None = None
        self._last_error: GenerationError | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._thread: threading.Thread | None = None

    # -- properties ---------------------------------------------------------

    @property
    def state(self) -> DriverState:
        with self._lock:
            return self._state

    @property
    def population(self) -> Population | None:
        with self._lock:
            return self._population

    @property
    def last_error(self) -> GenerationError | None:
        with self._lock:
            return self._last_error

    # -- transitions --------------------------------------------------------

    def load(self) -> bool:
        """Restore the current population from storage.

        Returns ``False`` when the storage holds no checkpoint.
        """
        with self._lock:
            if self._state is not DriverState.STOPPED:
                msg = f"Cannot load while {self._state.value}."
                raise StateError(msg)
        checkpoint = self.storage.load()
        if checkpoint is None:
            return False
        population = Population.restore(
            checkpoint.generation,
            checkpoint.individuals(),
            self._population_config,
            self.rng,
        )
        with self._lock:
            self._population = population
        self._log(
            f"Loaded generation {population.generation} "
            f"({len(population)} individuals)."
        )
        return True

    def start(self) -> None:
        """Begin running generations in the background."""
        with self._lock:
            if self._state is DriverState.RUNNING:
                return
            if self._state is DriverState.STOPPING:
                msg = "Cannot start while stopping."
                raise StateError(msg)
            self._state = DriverState.RUNNING
            self._last_error = None
            self._stopped.clear()
            previous = self._thread
        if (
            previous is not None
            and previous.is_alive()
            and previous is not threading.current_thread()
        ):
            previous.join()
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="mlpevo-eval"
            )
        thread = threading.Thread(target=self._run, name="mlpevo-driver", daemon=True)
        with self._lock:
            self._thread = thread
        thread.start()

    def stop(self, on_stopped: StopCallback | None = None) -> None:
        """Ask the driver to stop once the in-flight generation finishes.

        ``on_stopped`` runs immediately when the driver is already stopped.
        """
        with self._lock:
            stopped = self._state is DriverState.STOPPED
            if not stopped:
                self._state = DriverState.STOPPING
                if on_stopped is not None:
                    self._stop_callbacks.append(on_stopped)
        if stopped and on_stopped is not None:
            on_stopped()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the driver is stopped.

        Re-raises the :class:`GenerationError` that halted the run, if any.
        Returns ``False`` when ``timeout`` expired first.
        """
        finished = self._stopped.wait(timeout)
        if finished:
            error = self.last_error
            if error is not None:
                raise error
        return finished

    def shutdown(self, wait: bool = True) -> None:
        """Release the evaluation thread pool."""
        if wait:
            self._stopped.wait()
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> EvolutionDriver:
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.stop()
        self.shutdown()

    def evaluate(self, genome: Genome) -> Individual:
        """Score a single genome synchronously on the calling thread."""
        return self.evaluator.evaluate_genome(genome)

    # -- generation cycle ---------------------------------------------------

    def _run(self) -> None:
        while True:
            if self._limit_reached():
                self._finish(None)
                return
            try:
                population = self._next_population()
            except Exception as error:
                self._finish(
                    GenerationError("Unable to build the next generation", [error])
                )
                return

            try:
                failures = self._evaluate(population)
            except Exception as error:
                self._finish(
                    GenerationError(
                        f"Generation {population.generation} could not be evaluated",
                        [error],
                        generation=population.generation,
                    )
                )
                return
            if failures:
                self._finish(
                    GenerationError(
                        f"Generation {population.generation} failed",
                        failures,
                        generation=population.generation,
                    )
                )
                return

            self._persist(population)
            with self._lock:
                self._population = population
            if self.on_generation is not None:
                try:
                    self.on_generation(population)
                except Exception as error:
                    self._log(
                        f"on_generation hook failed: {type(error).__name__}: {error}",
                        error=True,
                    )

            with self._lock:
                stopping = self._state is DriverState.STOPPING
            if stopping or self._limit_reached():
                self._finish(None)
                return

    def _limit_reached(self) -> bool:
        limit = self.config.max_generations
        if limit is None:
            return False
        with self._lock:
            current = self._population
        return current is not None and current.generation + 1 >= limit

    def _next_population(self) -> Population:
        with self._lock:
            current = self._population
        if current is None:
            return Population.build(
                0,
                self._population_config,
                self.rng,
                seeds=self._initial_population or None,
            )
        seeds = breed_next_generation(
            current.individuals,
            self.config.population_size,
            self.rng,
            self._reproduction_config,
            self._population_config.ranges,
        )
        return Population.build(
            current.generation + 1, self._population_config, self.rng, seeds=seeds
        )

    def _evaluate(self, population: Population) -> tuple[BaseException, ...]:
        executor = self._executor
        if executor is None:
            msg = "The driver has been shut down."
            raise StateError(msg)
        self._log(
            f"Generation {population.generation} started "
            f"({len(population)} individuals, {self.workers} workers)."
        )
        tracker = _GenerationTracker(population)
        for index, individual in enumerate(population):
            future = executor.submit(self.evaluator, individual)
            future.add_done_callback(partial(self._report_individual, population, index))
            future.add_done_callback(partial(tracker.task_done, individual))
        tracker.done.wait()
        return tuple(tracker.errors)

    def _report_individual(
        self, population: Population, index: int, future: Future[Individual]
    ) -> None:
        individual = population[index]
        if individual.error is not None:
            error = individual.error
            self._log(
                f"Individual {index} of generation {population.generation} failed: "
                f"{type(error).__name__}: {error}"
            )
            return
        duration = individual.duration or 0.0
        self._log(
            f"Individual {index} of generation {population.generation} evaluated: "
            f"fitness={individual.fitness:.10f} time={duration:.3f}s"
        )

    def _persist(self, population: Population) -> None:
        checkpoint = Checkpoint.from_population(population)
        try:
            self.storage.save(checkpoint)
        except Exception as error:
            self._log(
                f"Failed to save generation {population.generation}: "
                f"{type(error).__name__}: {error}",
                error=True,
            )
            return
        self._log(
            f"Generation {population.generation} saved: "
            f"best={checkpoint.best_fitness():.6f} "
            f"mean={checkpoint.mean_fitness():.6f} "
            f"worst={checkpoint.worst_fitness():.6f}"
        )

    def _finish(self, error: GenerationError | None) -> None:
        if error is not None:
            self._log(str(error), error=True)
        with self._lock:
            self._last_error = error
            self._state = DriverState.STOPPED
            callbacks, self._stop_callbacks = self._stop_callbacks, []
        if error is not None and self.on_error is not None:
            self.on_error(error)
        for callback in callbacks:
            callback()
        with self._lock:
            if self._state is DriverState.STOPPED:
                self._stopped.set()

    def _log(self, message: str, *, error: bool = False) -> None:
        if self.logger is not None:
            self.logger.log(message)
        elif error:
            print(f"[mlpevo] {message}", file=sys.stderr)


__all__ = [
    "DriverState",
    "EvolutionDriver",
    "StopCallback",
    "default_workers",
]
