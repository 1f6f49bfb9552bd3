"""Variant calling pipeline with independent per-chromosome paths.

untar unpacks the reference genome into one chromosome file per path; every
gunzip decompresses a read set that is quality-checked by its own fastqc and
aligned on every path.  Each path runs faidx, build, align, sort, pileup and
varscan, and all paths end in a single annovar.

File sizes, runtimes and memory models are fitted to traces of real runs.
"""
from __future__ import annotations

from typing import List, Sequence

from wfsynth.sampling.distribution import constant, truncated_normal, uniform
from wfsynth.sampling.memory_model import LinearMemoryModel
from wfsynth.workflows.base import Application
from wfsynth.workflows.dag import Task

DEFAULT_GUNZIPS = 2
READS = "SRR359188"

TASK_TYPES = ("untar", "gunzip", "fastqc", "faidx", "build", "align", "sort", "pileup", "varscan", "annovar")


class VariantCalling(Application):

    NAMESPACE = "VariantCalling"
    # untar, annovar, one gunzip and fastqc pair per read set, six tasks per path
    MIN_TASKS = 2 + 2 * DEFAULT_GUNZIPS + 6

    def __init__(self, rng=None):
        super().__init__(rng)
        self.gunzips = DEFAULT_GUNZIPS
        self.paths = 1

    def register_task_types(self) -> None:
        for task_type in TASK_TYPES:
            if task_type in ("untar", "gunzip"):
                self.register_task_type(task_type, self.finish_unpack)
            elif task_type == "annovar":
                self.register_task_type(task_type, self.finish_annovar)
            else:
                self.register_task_type(task_type)

    def populate_distributions(self) -> None:
        d = self.distributions
        # file sizes
        d["untar_input"] = constant(3273.502720e6)
        d["untar_output"] = truncated_normal(130939246.0, 3.20135891361e+15)
        d["gunzip_input"] = constant(55)
        d["gunzip_output"] = constant(645395878.0)
        d["faidx_output"] = truncated_normal(738.4, 12275979.12)
        d["build_output"] = truncated_normal(181196390.4, 6.70218223337e+15)
        d["align_output"] = truncated_normal(26618855.28, 1.60339463157e+14)
        d["sort_output"] = truncated_normal(22393430.44, 1.11119046719e+14)
        d["pileup_output"] = truncated_normal(116875582.56, 3.52492963783e+15)
        d["varscan_output"] = truncated_normal(606048.04, 82585810907.9)
        d["fastqc_output"] = truncated_normal(444675.5, 389292630.25)
        d["annovar_output"] = constant(6989828)

        # runtimes
        d["untar"] = constant(53)
        d["gunzip"] = truncated_normal(27.5, 756.25)
        d["fastqc"] = truncated_normal(8.0, 64.0)
        d["faidx"] = truncated_normal(0.04, 0.0384)
        d["build"] = truncated_normal(85.64, 6642.5504)
        d["align"] = truncated_normal(0.96, 0.0384)
        d["sort"] = truncated_normal(2.96, 3.1584)
        d["pileup"] = truncated_normal(16.68, 227.8976)
        d["varscan"] = truncated_normal(18.2, 184.72)
        d["annovar"] = constant(13)

        m = self.memory_models
        m["untar"] = LinearMemoryModel.constant(6294.405120e6, 0.64e6, 10e6)
        m["gunzip"] = LinearMemoryModel.constant(225751040, 0.64e6, 10e6)
        m["fastqc"] = LinearMemoryModel.constant(172609536, 0.64e6, 10e6)
        m["faidx"] = LinearMemoryModel.constant(1138688, 0.64e6, 10e6)
        m["build"] = LinearMemoryModel(7.06621219e+00, -2.50037354e+07, 75168825.46073712, 10e6)
        m["align"] = LinearMemoryModel(-0.00313234721648, 8219825.53808, 1839863.20373326, 10e6)
        m["sort"] = LinearMemoryModel(5.98052744905, -25085974.9131, 10229878.82462673, 10e6)
        m["pileup"] = LinearMemoryModel(0.98062275764, -16982382.2809, 25700732.44343742, 10e6)
        m["varscan"] = LinearMemoryModel(1.2142658008, 2376073937.43, 1.18779457e+08, 10e6)
        m["annovar"] = LinearMemoryModel.constant(470867968, 0.16e6, 10e6)

        relative_time = uniform(0.4, 0.6)
        for task_type in TASK_TYPES:
            d[f"{task_type}_peak_mem_relative_time"] = relative_time

    def process_args(self, args: Sequence[str]) -> None:
        parser = self.make_parser()
        parser.add_argument("-p", "--paths", type=int, default=0, help="Number of independent paths.")
        parser.add_argument("-g", "--gunzips", type=int, default=DEFAULT_GUNZIPS, help="Number of read sets.")
        opts = parser.parse_args(args)
        if opts.gunzips < 1:
            parser.error(f"--gunzips must be >= 1, got {opts.gunzips}")
        self.gunzips = opts.gunzips

        if opts.paths > 0:
            self.paths = opts.paths
        else:
            self.check_num_jobs(opts.num_jobs)
            self.paths = max(1, (opts.num_jobs - 2 - 2 * self.gunzips) // 6)

    def construct_workflow(self) -> None:
        graph = self.graph

        untar = self.new_task("untar")
        graph.add_input(untar, "hg38.tar", self.generate_long("untar_input"))

        gunzips: List[Task] = []
        for _ in range(self.gunzips):
            gunzip = self.new_task("gunzip")
            graph.add_input(gunzip, f"{READS}_{gunzip.id}.filt.fastq.gz", self.generate_long("gunzip_input"))
            gunzips.append(gunzip)

        annovar = self.new_task("annovar")

        for gunzip in gunzips:
            fastqc = self.new_task("fastqc")
            graph.add_link(gunzip, fastqc, self.reads(gunzip), self.generate_long("gunzip_output"))
            graph.add_output(fastqc, f"{READS}_{gunzip.id}.filt_fastqc.zip", self.generate_long("fastqc_output"))
            self.finish(fastqc)

        for path in range(self.paths):
            faidx = self.new_task("faidx")
            build = self.new_task("build")
            align = self.new_task("align")
            sort = self.new_task("sort")
            pileup = self.new_task("pileup")
            varscan = self.new_task("varscan")

            for gunzip in gunzips:
                graph.add_link(gunzip, align, self.reads(gunzip), self.generate_long("gunzip_output"))

            chromosome = f"chr{path}.fa"
            chromosome_size = self.generate_long("untar_output")
            for consumer in (faidx, build, pileup):
                graph.add_link(untar, consumer, chromosome, chromosome_size)

            graph.add_link(build, align, f"{path}_idx.tar", self.generate_long("build_output"))
            graph.add_link(align, sort, f"{path}_alignment.bam", self.generate_long("align_output"))
            graph.add_link(sort, pileup, f"{path}_sorted.bam", self.generate_long("sort_output"))
            graph.add_link(faidx, pileup, f"chr{path}.fa.fai", self.generate_long("faidx_output"))
            graph.add_link(pileup, varscan, f"{path}_mpileup.csv", self.generate_long("pileup_output"))
            graph.add_link(varscan, annovar, f"{path}_variants.vcf", self.generate_long("varscan_output"))

            for task in (faidx, build, align, sort, pileup, varscan):
                self.finish(task)

        for gunzip in gunzips:
            self.finish(gunzip)
        self.finish(untar)
        self.finish(annovar)

    @staticmethod
    def reads(gunzip: Task) -> str:
        return f"{READS}_{gunzip.id}.filt.fastq"

    # ---- finish strategies ----
    def finish_unpack(self, task: Task) -> None:
        # unpacking holds the archive and its extracted content at once
        self.complete(task, self.generate_double(task.task_type) * self.runtime_factor,
                      memory_basis=2 * task.input_total_bytes)

    def finish_annovar(self, task: Task) -> None:
        annovar_size = self.generate_long("annovar_output")
        self.graph.add_output(task, "table.variant_function", annovar_size)
        self.complete(task, self.generate_double("annovar"), memory_basis=annovar_size)
