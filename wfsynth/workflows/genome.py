"""Epigenomics (genome) workflow.

Each sequencing lane is split by fastQSplit into chunks; every chunk runs
filterContams -> sol2sanger -> fast2bfq -> map, and the lane's maps are
merged by a per-lane mapMerge.  A global mapMerge joins the lanes and feeds
maqIndex -> pileup.
"""
from __future__ import annotations

from typing import List, Sequence

from wfsynth.errors import ConfigurationError
from wfsynth.sampling.distribution import truncated_normal, uniform
from wfsynth.sampling.memory_model import LinearMemoryModel
from wfsynth.sampling.misc import close_non_zero_randoms, random_int
from wfsynth.workflows.base import Application

# mean runtimes (s) per task type
RUNTIMES = {
    "fastqSplit": 34.32,
    "filterContams": 2.47,
    "sol2sanger": 0.66,
    "fast2bfq": 1.37,
    "map": 1473.61,
    "mapMerge": 11.06,
    "maqIndex": 43.57,
    "pileup": 55.95,
}

PEAK_MEMORY = {
    "fastqSplit": 16.1e6,
    "filterContams": 11.5e6,
    "sol2sanger": 12.3e6,
    "fast2bfq": 10.8e6,
    "mapMerge": 14.2e6,
    "maqIndex": 180e6,
    "pileup": 450e6,
}

REFERENCE = "chr21.BSnull.bfa"
# tasks outside the lanes: global mapMerge, maqIndex, pileup
FIXED_TASKS = 3
CHUNK_TASKS = 4
LANE_TASKS = 2


class Genome(Application):

    NAMESPACE = "Genome"
    MIN_TASKS = FIXED_TASKS + LANE_TASKS + CHUNK_TASKS

    def __init__(self, rng=None):
        super().__init__(rng)
        self.chunks: List[int] = []

    def register_task_types(self) -> None:
        for task_type in RUNTIMES:
            self.register_task_type(task_type)

    def populate_distributions(self) -> None:
        d = self.distributions
        for task_type, mean in RUNTIMES.items():
            d[task_type] = truncated_normal(mean, (0.3 * mean) ** 2)

        d["LANE_SIZE"] = truncated_normal(1.2e9, (0.25e9) ** 2)
        d["REFERENCE_SIZE"] = truncated_normal(47e6, (1e6) ** 2)
        # output / input size ratios along a chunk
        d["filterContams_ratio"] = uniform(0.9, 1.0)
        d["sol2sanger_ratio"] = uniform(0.95, 1.05)
        d["fast2bfq_ratio"] = uniform(0.2, 0.3)
        d["map_ratio"] = uniform(0.9, 1.1)
        d["mapMerge_ratio"] = uniform(0.98, 1.0)
        d["INDEX_RATIO"] = uniform(1.1, 1.3)
        d["PILEUP_RATIO"] = uniform(2.5, 3.5)

        self.set_constant_memory(PEAK_MEMORY)
        # map is dominated by the reference and grows with the chunk size
        self.memory_models["map"] = LinearMemoryModel(slope=1.6, intercept=120e6, error_std=15e6, min_value=10e6)

    def process_args(self, args: Sequence[str]) -> None:
        parser = self.make_parser()
        parser.add_argument("-l", "--lanes", type=int, default=0, help="Number of sequencing lanes.")
        opts = parser.parse_args(args)
        self.check_num_jobs(opts.num_jobs)

        per_lane = opts.num_jobs - FIXED_TASKS
        lanes = opts.lanes or max(1, random_int(max(1, per_lane // 100), 0.5, self.rng))
        # every lane needs at least one chunk
        lanes = min(lanes, per_lane // (LANE_TASKS + CHUNK_TASKS))
        if lanes < 1:
            raise ConfigurationError(f"Cannot generate Genome workflow with numJobs={opts.num_jobs}")
        total_chunks = (per_lane - LANE_TASKS * lanes) // CHUNK_TASKS
        self.chunks = close_non_zero_randoms(lanes, total_chunks, 0.25, self.rng)

    def construct_workflow(self) -> None:
        graph = self.graph
        reference_size = self.generate_long("REFERENCE_SIZE")

        global_merge = self.new_task("mapMerge")
        index = self.new_task("maqIndex")
        pileup = self.new_task("pileup")

        for lane, num_chunks in enumerate(self.chunks):
            split = self.new_task("fastqSplit")
            lane_size = self.generate_long("LANE_SIZE")
            graph.add_input(split, f"lane{lane}.sfq", lane_size)
            lane_merge = self.new_task("mapMerge")

            for chunk in range(num_chunks):
                name = f"lane{lane}.chunk{chunk}"
                size = max(1, lane_size // num_chunks)
                previous = split
                for task_type, suffix in (("filterContams", "sfq"), ("sol2sanger", "nocontam.sfq"),
                                          ("fast2bfq", "fq"), ("map", "bfq")):
                    task = self.new_task(task_type)
                    graph.add_link(previous, task, f"{name}.{suffix}", size)
                    if previous is not split:
                        self.finish(previous)
                    size = max(1, int(size * self.generate_double(f"{task_type}_ratio")))
                    previous = task
                graph.add_input(previous, REFERENCE, reference_size)
                graph.add_link(previous, lane_merge, f"{name}.map", size)
                self.finish(previous)

            self.finish(split)
            merged = int(lane_merge.input_total_bytes * self.generate_double("mapMerge_ratio"))
            graph.add_link(lane_merge, global_merge, f"lane{lane}.map", max(1, merged))
            self.finish(lane_merge)

        merged = int(global_merge.input_total_bytes * self.generate_double("mapMerge_ratio"))
        graph.add_link(global_merge, index, "chr21.map", max(1, merged))
        graph.add_link(global_merge, pileup, "chr21.map", max(1, merged))
        self.finish(global_merge)

        graph.add_input(pileup, REFERENCE, reference_size)
        graph.add_link(index, pileup, "chr21.map.idx", int(merged * self.generate_double("INDEX_RATIO")))
        self.finish(index)

        graph.add_output(pileup, "chr21.pileup", int(merged * self.generate_double("PILEUP_RATIO")))
        self.finish(pileup)
