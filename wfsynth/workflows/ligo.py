"""LIGO inspiral analysis workflow.

Each group processes a number of data blocks in two rounds:

    blocks x (TmpltBank -> Inspiral) -> Thinca -> blocks x (TrigBank -> Inspiral) -> Thinca

The first Thinca's coincidence file is read by every TrigBank of the group.
"""
from __future__ import annotations

from typing import List, Sequence

from wfsynth.errors import ConfigurationError
from wfsynth.sampling.distribution import truncated_normal, uniform
from wfsynth.sampling.memory_model import LinearMemoryModel
from wfsynth.sampling.misc import close_non_zero_randoms, random_int
from wfsynth.workflows.base import Application
from wfsynth.workflows.dag import Task

RUNTIMES = {
    "TmpltBank": 18.14,
    "Inspiral": 460.20,
    "Thinca": 5.37,
    "TrigBank": 5.11,
}

PEAK_MEMORY = {
    "TmpltBank": 404e6,
    "Thinca": 14e6,
    "TrigBank": 12e6,
}

# per block: TmpltBank, Inspiral, TrigBank, Inspiral
BLOCK_TASKS = 4
# per group: two Thinca
GROUP_TASKS = 2


class Ligo(Application):

    NAMESPACE = "LIGO"
    MIN_TASKS = BLOCK_TASKS + GROUP_TASKS

    def __init__(self, rng=None):
        super().__init__(rng)
        self.blocks: List[int] = []

    def register_task_types(self) -> None:
        self.register_task_type("TmpltBank")
        self.register_task_type("Inspiral")
        self.register_task_type("Thinca", self.finish_thinca)
        self.register_task_type("TrigBank")

    def populate_distributions(self) -> None:
        d = self.distributions
        for task_type, mean in RUNTIMES.items():
            d[task_type] = truncated_normal(mean, (0.3 * mean) ** 2)
        d["FRAME"] = truncated_normal(260e6, (30e6) ** 2)
        d["BANK"] = truncated_normal(920e3, (200e3) ** 2)
        d["INSPIRAL_OUTPUT"] = truncated_normal(290e3, (120e3) ** 2)
        d["THINCA_RATIO"] = uniform(0.6, 0.9)
        d["TRIGBANK_OUTPUT"] = truncated_normal(14e3, (5e3) ** 2)

        self.set_constant_memory(PEAK_MEMORY)
        # the inspiral filter holds the frame data in memory
        self.memory_models["Inspiral"] = LinearMemoryModel(slope=2.5, intercept=80e6, error_std=25e6,
                                                           min_value=10e6)

    def process_args(self, args: Sequence[str]) -> None:
        parser = self.make_parser()
        parser.add_argument("-g", "--groups", type=int, default=0, help="Number of independent groups.")
        opts = parser.parse_args(args)
        self.check_num_jobs(opts.num_jobs)

        max_groups = opts.num_jobs // (BLOCK_TASKS + GROUP_TASKS)
        groups = opts.groups or max(1, random_int(max(1, opts.num_jobs // 50), 0.5, self.rng))
        groups = min(groups, max_groups)
        if groups < 1:
            raise ConfigurationError(f"Cannot generate Ligo workflow with numJobs={opts.num_jobs}")
        total_blocks = (opts.num_jobs - GROUP_TASKS * groups) // BLOCK_TASKS
        self.blocks = close_non_zero_randoms(groups, total_blocks, 0.25, self.rng)

    def construct_workflow(self) -> None:
        graph = self.graph
        for group, num_blocks in enumerate(self.blocks):
            first_thinca = self.new_task("Thinca")
            second_thinca = self.new_task("Thinca")
            frames = []

            for block in range(num_blocks):
                frame = f"H1-{group}-{block}.gwf"
                frame_size = self.generate_long("FRAME")
                frames.append((frame, frame_size))
                bank = self.new_task("TmpltBank")
                graph.add_input(bank, frame, frame_size)
                inspiral = self.new_task("Inspiral")
                graph.add_input(inspiral, frame, frame_size)
                graph.add_link(bank, inspiral, f"H1-TMPLTBANK_{bank.id}.xml", self.generate_long("BANK"))
                self.finish(bank)
                graph.add_link(inspiral, first_thinca, f"H1-INSPIRAL_{inspiral.id}.xml",
                               self.generate_long("INSPIRAL_OUTPUT"))
                self.finish(inspiral)

            coincidences = f"H1L1-THINCA_{group}.xml"
            coincidence_size = max(1, int(first_thinca.input_total_bytes * self.generate_double("THINCA_RATIO")))
            for frame, frame_size in frames:
                trigbank = self.new_task("TrigBank")
                graph.add_link(first_thinca, trigbank, coincidences, coincidence_size)
                inspiral = self.new_task("Inspiral")
                graph.add_input(inspiral, frame, frame_size)
                graph.add_link(trigbank, inspiral, f"H1-TRIGBANK_{trigbank.id}.xml",
                               self.generate_long("TRIGBANK_OUTPUT"))
                self.finish(trigbank)
                graph.add_link(inspiral, second_thinca, f"H1-INSPIRAL2_{inspiral.id}.xml",
                               self.generate_long("INSPIRAL_OUTPUT"))
                self.finish(inspiral)
            self.finish(first_thinca)
            self.finish(second_thinca)

    def finish_thinca(self, task: Task) -> None:
        # the closing Thinca of a group has no consumer yet
        if not task.outputs:
            size = max(1, int(task.input_total_bytes * self.generate_double("THINCA_RATIO")))
            self.graph.add_output(task, f"H1L1-THINCA2_{task.id}.xml", size)
        self.finish_default(task)
