"""
Centralized logging configuration for the MCP server.

All logging goes to stderr so that nothing corrupts the MCP JSON-RPC
protocol on stdout.
"""

import logging
import sys


def configure_mcp_logging(level=logging.INFO):
    """
    Route all loggers to a single stderr handler.

    Args:
        level: Root logging level (default INFO)
    """
    root_logger = logging.getLogger()

    # Drop anything that may write to stdout
    root_logger.handlers = []

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level)

    for logger_name in (
        'ro_train.simulate_ro',
        'ro_train.ro_solver',
        'ro_train.stage_aggregator',
        'ro_train.element_model',
        'ro_train.scaling_prediction',
        'ro_train.chemical_dosing',
        'ro_train.config',
    ):
        logging.getLogger(logger_name).propagate = True

    # Suppress verbose loggers
    logging.getLogger('fastmcp').setLevel(logging.WARNING)


def get_configured_logger(name):
    """
    Get a logger that only propagates to the root stderr handler.

    Args:
        name: Logger name (usually __name__)

    Returns:
        logging.Logger: Configured logger
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    logger.handlers = []
    return logger
