from dagster import AssetKey, define_asset_job, AssetSelection, in_process_executor

# -------------------- Jobs --------------------
# Rebuild the dashboard's pool details from the published metrics files
refresh_pool_details_job = define_asset_job(
    name="refresh_pool_details",
    selection=AssetSelection.keys(
        AssetKey(["dashboard", "pool_details"])
    ),
    description="Fetch pool metrics by region, node type and rebuild the dashboard pool details",
    executor_def=in_process_executor
)
