# openpool_dashboard/sensors.py
from datetime import datetime

from dagster import sensor, RunRequest, SkipReason, SensorEvaluationContext, RunsFilter, DagsterRunStatus

SENSOR_SOURCE = "pool_refresh_sensor"


@sensor(
    job_name="refresh_pool_details",
    minimum_interval_seconds=300
)
def pool_refresh_sensor(context: SensorEvaluationContext):
    """
    Sensor that periodically triggers a fresh pool details run.
    Each run fetches every source once; sources that failed are retried by the
    next run. A new run is not requested while a previous one is still active.
    """
    instance = context.instance

    existing_runs = instance.get_runs(
        filters=RunsFilter(
            job_name="refresh_pool_details",
            statuses=[
                DagsterRunStatus.STARTED,
                DagsterRunStatus.QUEUED,
                DagsterRunStatus.STARTING,
                DagsterRunStatus.CANCELING
            ],
            tags={"source": SENSOR_SOURCE}
        )
    )

    if existing_runs:
        for run in existing_runs:
            context.log.info(f"Pool details refresh already active: {run.run_id}")
        yield SkipReason("A pool details refresh is already in progress")
        return

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    context.log.info(f"Requesting pool details refresh {timestamp}")
    yield RunRequest(
        run_key=f"pool_refresh_{timestamp}",
        tags={
            "source": SENSOR_SOURCE,
            "requested_at": timestamp
        }
    )
