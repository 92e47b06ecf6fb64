"""wr_scheduler — translate a pipeline function graph into wr jobs.

Takes a DAG of pipeline functions and, for each function, the ordered
list of work items already decided upstream, and writes one ``wr add``
record per job with precise dependency groups, resources, a per-job log
file and concurrency limits for archival functions.

Typical usage::

    from wr_scheduler.config import SchedulerConfig
    from wr_scheduler.definition import load_definitions
    from wr_scheduler.driver import execute
    from wr_scheduler.graph import FunctionGraph

    cfg         = SchedulerConfig.from_yaml("/etc/wr_scheduler/config.yaml")
    graph       = FunctionGraph.from_file("function_list.json")
    definitions = load_definitions("definitions.yaml")
    manifest    = execute(graph, definitions, cfg, dry_run=True)
"""

__version__ = "0.1.0"
