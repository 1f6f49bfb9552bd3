"""CyberShake seismic hazard workflow.

ExtractSGT -> SeismogramSynthesis x k -> PeakValCalcOkaya, with every
synthesis feeding the single ZipSeis and every peak value task feeding the
single ZipPSA.  Consecutive ExtractSGT tasks belong to the same rupture
unless a biased coin starts a new one.
"""
from __future__ import annotations

import math
from typing import List, Sequence

from wfsynth.errors import ConfigurationError
from wfsynth.sampling.distribution import constant, truncated_normal, uniform
from wfsynth.sampling.misc import close_non_zero_randoms, random_int, random_long, random_toss
from wfsynth.workflows.base import Application
from wfsynth.workflows.dag import File, Task

MAX_RUPTURES = 30
MAX_VARIATIONS = 30
# probability that the next ExtractSGT starts a new rupture
BIAS = 1.0 / 20
MIN_INPUTS = 1
EXTRACT_SGT_FACTOR = 0.0081
DEFAULT_RUNTIME_FACTOR = 10.0

SITES = ("CCP", "DLA", "FFI", "LADT", "LBP", "PAS", "SABD", "SBSM", "SMCA", "USC", "WNGC")


class Cybershake(Application):

    NAMESPACE = "Cybershake"
    MIN_TASKS = 7

    def __init__(self, rng=None):
        super().__init__(rng)
        self.site = "FFI"
        self.counts: List[int] = []
        self.num_extract_sgt = 0

    def register_task_types(self) -> None:
        self.register_task_type("ExtractSGT", self.finish_extract_sgt)
        self.register_task_type("SeismogramSynthesis")
        self.register_task_type("PeakValCalcOkaya")
        self.register_task_type("ZipSeis", self.finish_zip_seis)
        self.register_task_type("ZipPSA", self.finish_zip_psa)

    def populate_distributions(self) -> None:
        d = self.distributions
        # file sizes
        d["SGT"] = truncated_normal(19e9, 93654683e9)
        d["SGT_MEAN"] = constant(19958666972.0)
        d["SUB_SGT"] = truncated_normal(231720131.58, 27081652820787388.00)
        d["SLIP"] = uniform(0, 10000)
        d["HIPO"] = uniform(0, 10000)
        d["VARIATION"] = truncated_normal(3708598.53, 3187576.0 ** 2)
        d["GRM"] = constant(24000)
        d["BSA"] = constant(216)
        d["ZipSeis_factor"] = constant(6)
        d["ZipPSA_factor"] = constant(6)

        # runtimes
        d["ExtractSGT"] = truncated_normal(137.45, 206.0 ** 2)
        d["SeismogramSynthesis"] = truncated_normal(43.40, 31.0 ** 2)
        d["PeakValCalcOkaya"] = truncated_normal(1.09, 3.71)
        d["ZipSeis_rate"] = constant(228180.0)
        d["ZipPSA_rate"] = constant(2782.0)

        self.set_constant_memory({
            "ExtractSGT": 2.1e9,
            "SeismogramSynthesis": 0.82e9,
            "PeakValCalcOkaya": 18e6,
            "ZipSeis": 12e6,
            "ZipPSA": 11e6,
        })

    def process_args(self, args: Sequence[str]) -> None:
        parser = self.make_parser()
        parser.add_argument("-d", "--data", type=int, default=0, help="Approximate size of input dataset.")
        parser.add_argument("-f", "--factor", type=float, default=DEFAULT_RUNTIME_FACTOR,
                            help="Runtime multiplier for the compute tasks.")
        parser.add_argument("-r", "--ruptures", type=int, default=MAX_RUPTURES, help="Number of ruptures.")
        parser.add_argument("-v", "--variations", type=int, default=MAX_VARIATIONS,
                            help="Maximum number of variations for any rupture.")
        parser.add_argument("-s", "--site", choices=SITES, default="FFI")
        opts = parser.parse_args(args)

        if opts.factor <= 0:
            raise ConfigurationError(f"Runtime factor must be positive, got {opts.factor}")
        self.runtime_factor = opts.factor
        self.site = opts.site

        if opts.data > 0:
            # reverse engineer everything from the data size
            sgt_mean = self.generate_long("SGT_MEAN")
            if opts.data < sgt_mean * MIN_INPUTS:
                raise ConfigurationError(
                    f"Not enough data: {opts.data}, minimum required: {sgt_mean * MIN_INPUTS}")
            num_extract_sgt = math.ceil(opts.data / sgt_mean)
            num_jobs = num_extract_sgt + random_int(num_extract_sgt * 5, 0.25, self.rng) + 2
            num_synthesis = (num_jobs - 2 - num_extract_sgt) // 2
            counts = sorted(close_non_zero_randoms(num_extract_sgt, num_synthesis, 0.25, self.rng))
        elif opts.num_jobs > 0:
            self.check_num_jobs(opts.num_jobs)
            num_extract_sgt, counts = self.split_num_jobs(opts.num_jobs)
        elif opts.ruptures > 0 and opts.variations > 0:
            num_extract_sgt = opts.ruptures * opts.variations
            total = random_int(num_extract_sgt * 6, 0.1, self.rng)
            counts = close_non_zero_randoms(num_extract_sgt, total, 0.25, self.rng)
        else:
            raise ConfigurationError("One of --data, --num-jobs or --ruptures/--variations is required")

        self.num_extract_sgt = num_extract_sgt
        self.counts = counts

    def split_num_jobs(self, num_jobs: int):
        """Choose the ExtractSGT count and synthesis fan-out so the total is exactly `num_jobs`."""
        remaining = num_jobs - 2
        num_extract_sgt = max(2, random_int(int(remaining * EXTRACT_SGT_FACTOR), 0.5, self.rng))
        if (remaining - num_extract_sgt) % 2 != 0:
            num_extract_sgt -= 1
        num_synthesis = (remaining - num_extract_sgt) // 2
        if num_synthesis < num_extract_sgt:
            raise ConfigurationError(f"Cannot generate Cybershake workflow with numJobs={num_jobs}")
        counts = sorted(close_non_zero_randoms(num_extract_sgt, num_synthesis, 0.25, self.rng))
        return num_extract_sgt, counts

    def construct_workflow(self) -> None:
        graph = self.graph
        rupture, variation = 0, 0

        zip_psa = self.new_task("ZipPSA")
        zip_seis = self.new_task("ZipSeis")

        for i in range(self.num_extract_sgt):
            if random_toss(BIAS, self.rng):
                rupture += 1
                variation = 0
            else:
                variation += 1
            prefix = f"{self.site}_{rupture}_{variation}"

            extract = self.new_task("ExtractSGT")
            sgt_size = self.generate_long("SGT")
            graph.add_input(extract, f"{prefix}_fx.sgt", sgt_size)
            graph.add_input(extract, f"{prefix}_fy.sgt", sgt_size)

            for _ in range(self.counts[i]):
                synthesis = self.new_task("SeismogramSynthesis")
                slip = self.generate_int("SLIP")
                hipo = self.generate_int("HIPO")
                graph.add_input(synthesis, f"{prefix}_txt.variation-s{slip:05d}-h{hipo:05d}",
                                self.generate_long("VARIATION"))

                sub_size = self.generate_long("SUB_SGT")
                graph.add_link(extract, synthesis, f"{prefix}_subfx.sgt", sub_size)
                graph.add_link(extract, synthesis, f"{prefix}_subfy.sgt", sub_size)

                seismogram = f"Seismogram_{prefix}_{synthesis.id}.grm"
                graph.add_link(synthesis, zip_seis, seismogram, self.generate_long("GRM"))

                peak = self.new_task("PeakValCalcOkaya")
                graph.add_link(synthesis, peak, seismogram, self.generate_long("GRM"))
                peak_vals = seismogram.replace("Seismogram", "PeakVals").replace("grm", "bsa")
                graph.add_link(peak, zip_psa, peak_vals, self.generate_long("BSA"))

                self.finish(synthesis)
                self.finish(peak)
            self.finish(extract)

        self.finish(zip_psa)
        self.finish(zip_seis)

    # ---- finish strategies ----
    def finish_extract_sgt(self, task: Task) -> None:
        # the variation files of the last synthesis are staged with the SGTs
        if task.children:
            last_child = list(task.children.values())[-1]
            for name, f in last_child.inputs.items():
                if "variation" in name:
                    task.inputs[name] = File(name, f.size)
        self.finish_default(task)

    def finish_zip(self, task: Task, output_name: str, unit_key: str, factor_key: str, rate_key: str) -> None:
        zip_size = random_long(len(task.inputs) * self.generate_long(unit_key) / self.generate_double(factor_key),
                               0.25, self.rng)
        self.graph.add_output(task, output_name, zip_size)
        runtime = max(1.0, zip_size * self.runtime_factor / self.generate_double(rate_key))
        self.complete(task, runtime)

    def finish_zip_seis(self, task: Task) -> None:
        self.finish_zip(task, "Cybershake_Seismograms.zip", "GRM", "ZipSeis_factor", "ZipSeis_rate")

    def finish_zip_psa(self, task: Task) -> None:
        self.finish_zip(task, "Cybershake_PSA.zip", "BSA", "ZipPSA_factor", "ZipPSA_rate")
