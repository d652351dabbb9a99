"""
Analyzer base interface for the structural analysis stages.

Defines the contract every pipeline stage follows using Protocol
(structural subtyping), plus an optional base class with timing and
error wrapping.
"""

import logging
import time
from abc import abstractmethod
from typing import Any, Generic, Protocol, TypeVar

from beatsync.utils.errors import AnalysisError, AudioAnalysisError

T = TypeVar('T')
T_co = TypeVar('T_co', covariant=True)


class Analyzer(Protocol[T_co]):
    """
    Structural protocol for pipeline stages.

    A stage needs a name, a version and an ``analyze`` method; it does not
    have to inherit from BaseAnalyzer.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def version(self) -> str:
        ...

    def analyze(self, *args: Any, **kwargs: Any) -> T_co:
        ...


class BaseAnalyzer(Generic[T]):
    """
    Template-method base: ``analyze`` times the call and wraps unexpected
    failures, subclasses implement ``_analyze_impl``.

    AudioAnalysisError subclasses (for example InvalidFrameSizeError)
    propagate unchanged; anything else becomes an AnalysisError naming the
    stage.
    """

    def __init__(self, name: str, version: str):
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"analyzer.{name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def analyze(self, *args: Any, **kwargs: Any) -> T:
        """
        Run the stage.

        Raises:
            AnalysisError: If the stage fails unexpectedly
        """
        start_time = time.perf_counter()

        try:
            result = self._analyze_impl(*args, **kwargs)
        except AudioAnalysisError:
            raise
        except Exception as e:
            self.logger.error(f"Analysis failed: {e}")
            raise AnalysisError(
                f"{self.name} analysis failed: {e}",
                analyzer_name=self.name,
                original_error=e
            ) from e

        elapsed = time.perf_counter() - start_time
        self.logger.debug(f"Analysis complete in {elapsed:.3f}s")
        return result

    @abstractmethod
    def _analyze_impl(self, *args: Any, **kwargs: Any) -> T:
        raise NotImplementedError
