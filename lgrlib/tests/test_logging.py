"""Tests for lgrlib._logging (package logger configuration)."""

import io
import logging

import numpy as np
import pytest

from lgrlib import (
    ExplicitSimulation,
    MaterialParameters,
    ModelFlag,
    SimulationParams,
    ZeroVelocity,
    material_from_flags,
    setup_logging,
)
from lgrlib._errors import ConfigurationError
from lgrlib._logging import resolve_level


# Fixtures

@pytest.fixture
def package_logger():
    """The ``lgrlib`` logger, restored to an unconfigured state afterwards."""
    logger = logging.getLogger('lgrlib')
    user_handlers = list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        if handler not in user_handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)
    for name in ('materials', 'dynamic_integrators'):
        logging.getLogger(f'lgrlib.{name}').setLevel(logging.NOTSET)


def own_handlers(logger):
    return [h for h in logger.handlers if getattr(h, '_lgrlib', False)]


class TestResolveLevel:
    def test_names_and_numbers(self):
        assert resolve_level('debug') == logging.DEBUG
        assert resolve_level('WARNING') == logging.WARNING
        assert resolve_level(15) == 15

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            resolve_level('loud')


class TestSetupLogging:
    def test_console_handler(self, package_logger):
        stream = io.StringIO()
        logger = setup_logging('info', stream=stream)
        assert logger is package_logger
        assert logger.level == logging.INFO
        handlers = own_handlers(logger)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)

        logging.getLogger('lgrlib.mesh').info("built %d nodes", 4)
        logging.getLogger('lgrlib.mesh').debug("hidden")
        out = stream.getvalue()
        assert "INFO    lgrlib.mesh: built 4 nodes" in out
        assert "hidden" not in out

    def test_file_output(self, package_logger, tmp_path):
        path = tmp_path / 'run.log'
        setup_logging(logging.DEBUG, log_file=str(path), stream=io.StringIO())
        handlers = own_handlers(package_logger)
        assert len(handlers) == 2
        assert any(isinstance(h, logging.FileHandler) for h in handlers)

        logging.getLogger('lgrlib.materials').debug("J2 return mapping: %d yielded", 3)
        text = path.read_text(encoding='utf-8')
        assert "DEBUG   lgrlib.materials: J2 return mapping: 3 yielded" in text

    def test_repeated_setup_replaces_own_handlers(self, package_logger):
        foreign = logging.NullHandler()
        package_logger.addHandler(foreign)
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())
        assert len(own_handlers(package_logger)) == 1
        assert foreign in package_logger.handlers
        package_logger.removeHandler(foreign)

    def test_subpackage_levels(self, package_logger):
        stream = io.StringIO()
        setup_logging('warning', stream=stream, modules={'materials': 'debug'})
        logging.getLogger('lgrlib.materials').debug("material detail")
        logging.getLogger('lgrlib.mesh').info("mesh detail")
        out = stream.getvalue()
        assert "material detail" in out
        assert "mesh detail" not in out


class TestSimulationWiring:
    def test_params_level_configures_logging(self, package_logger, tmp_path):
        path = tmp_path / 'sim.log'
        solid = material_from_flags(ModelFlag.NEO_HOOKEAN,
                                    MaterialParameters(K0=1.0, G0=1.0))
        sim = ExplicitSimulation(SimulationParams(end_time=0.5, log_level='info',
                                                  log_file=str(path)))
        sim.set_mesh(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                               [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]), [[0, 1, 2, 3]])
        sim.set_materials(solid).set_initial_conditions(ZeroVelocity())
        sim.run()
        assert package_logger.level == logging.INFO
        lines = path.read_text(encoding='utf-8').splitlines()
        assert any("initialized 4 nodes, 1 elements, 1 points" in line for line in lines)
        assert sum(": step " in line for line in lines) == sim.state.n

    def test_invalid_level_rejected(self):
        with pytest.raises(ConfigurationError):
            SimulationParams(log_level='loud').validate()
