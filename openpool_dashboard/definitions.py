# openpool_dashboard/definitions.py
"""
Dagster definitions for the OpenPool dashboard data pipeline.
"""
from dagster import Definitions, mem_io_manager
from dotenv import load_dotenv

# Load environment variables from .env file before configs read them
load_dotenv()

from openpool_dashboard.assets.dashboard import pool_details
from openpool_dashboard.configs import DashboardConfig
from openpool_dashboard.jobs import refresh_pool_details_job
from openpool_dashboard.resources import PoolMetricsResource
from openpool_dashboard.sensors import pool_refresh_sensor

# -------------------- Definitions --------------------

defs = Definitions(
    assets=[pool_details],
    jobs=[refresh_pool_details_job],
    sensors=[pool_refresh_sensor],
    resources={
        # Pool details are rebuilt on every run and never stored
        "io_manager": mem_io_manager,
        "pool_metrics": PoolMetricsResource(
            config=DashboardConfig()
        ),
    },
)
