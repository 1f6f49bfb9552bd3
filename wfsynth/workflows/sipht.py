"""SIPHT sRNA search workflow.

Per genome replicate: a fan of Patser tasks merged by Patser_concate, plus
Transterm, Findterm, RNAMotif and Blast, all feeding SRNA.  SRNA fans out to
five annotation tasks that are joined by SRNA_annotate.
"""
from __future__ import annotations

from typing import List, Sequence

from wfsynth.sampling.distribution import truncated_normal, uniform
from wfsynth.sampling.misc import close_non_zero_randoms
from wfsynth.workflows.base import Application

RUNTIMES = {
    "Patser": 0.96,
    "Patser_concate": 0.03,
    "Transterm": 32.41,
    "Findterm": 594.94,
    "RNAMotif": 25.69,
    "Blast": 3311.12,
    "SRNA": 12.44,
    "FFN_Parse": 0.73,
    "Blast_synteny": 3.37,
    "Blast_candidate": 0.60,
    "Blast_QRNA": 440.88,
    "Blast_paralogues": 0.68,
    "SRNA_annotate": 0.14,
}

PEAK_MEMORY = {
    "Patser": 12e6,
    "Patser_concate": 10.5e6,
    "Transterm": 48e6,
    "Findterm": 1.1e9,
    "RNAMotif": 95e6,
    "Blast": 2.4e9,
    "SRNA": 28e6,
    "FFN_Parse": 14e6,
    "Blast_synteny": 160e6,
    "Blast_candidate": 140e6,
    "Blast_QRNA": 780e6,
    "Blast_paralogues": 150e6,
    "SRNA_annotate": 11e6,
}

PREDICTORS = ("Transterm", "Findterm", "RNAMotif", "Blast")
ANNOTATORS = ("FFN_Parse", "Blast_synteny", "Blast_candidate", "Blast_QRNA", "Blast_paralogues")
# Patser_concate, the predictors, SRNA, the annotators and SRNA_annotate
REPLICATE_TASKS = 1 + len(PREDICTORS) + 1 + len(ANNOTATORS) + 1
# typical number of Patser tasks per replicate
PATSER_PER_REPLICATE = 30


class Sipht(Application):

    NAMESPACE = "Sipht"
    MIN_TASKS = REPLICATE_TASKS + 1

    def __init__(self, rng=None):
        super().__init__(rng)
        self.patsers: List[int] = []

    def register_task_types(self) -> None:
        for task_type in RUNTIMES:
            self.register_task_type(task_type)

    def populate_distributions(self) -> None:
        d = self.distributions
        for task_type, mean in RUNTIMES.items():
            d[task_type] = truncated_normal(mean, (0.3 * mean) ** 2)
        d["GENOME"] = truncated_normal(5.5e6, (1.2e6) ** 2)
        d["MATRIX"] = uniform(500, 2000)
        d["PATSER_OUTPUT"] = truncated_normal(1.7e3, (0.4e3) ** 2)
        d["PREDICTION"] = truncated_normal(150e3, (60e3) ** 2)
        d["CANDIDATES"] = truncated_normal(25e3, (8e3) ** 2)
        d["ANNOTATION"] = truncated_normal(12e3, (5e3) ** 2)
        d["DATABASE"] = uniform(1.1e9, 1.3e9)
        d["ANNOTATE_RATIO"] = uniform(1.0, 1.5)

        self.set_constant_memory(PEAK_MEMORY)

    def process_args(self, args: Sequence[str]) -> None:
        parser = self.make_parser()
        parser.add_argument("-r", "--replicates", type=int, default=0, help="Number of genome replicates.")
        opts = parser.parse_args(args)
        self.check_num_jobs(opts.num_jobs)

        max_replicates = opts.num_jobs // self.MIN_TASKS
        replicates = opts.replicates or round(opts.num_jobs / (REPLICATE_TASKS + PATSER_PER_REPLICATE))
        replicates = min(max(1, replicates), max_replicates)
        total_patsers = opts.num_jobs - REPLICATE_TASKS * replicates
        self.patsers = close_non_zero_randoms(replicates, total_patsers, 0.25, self.rng)

    def construct_workflow(self) -> None:
        graph = self.graph
        database_size = self.generate_long("DATABASE")

        for replicate, num_patsers in enumerate(self.patsers):
            genome = f"genome_{replicate}.fna"
            genome_size = self.generate_long("GENOME")

            concate = self.new_task("Patser_concate")
            srna = self.new_task("SRNA")
            annotate = self.new_task("SRNA_annotate")

            for i in range(num_patsers):
                patser = self.new_task("Patser")
                graph.add_input(patser, genome, genome_size)
                graph.add_input(patser, f"matrix_{i}.pssm", self.generate_long("MATRIX"))
                graph.add_link(patser, concate, f"{genome}.{patser.id}.patser",
                               self.generate_long("PATSER_OUTPUT"))
                self.finish(patser)

            graph.add_link(concate, srna, f"{genome}.patser.concat", max(1, concate.input_total_bytes))
            self.finish(concate)

            for task_type in PREDICTORS:
                predictor = self.new_task(task_type)
                graph.add_input(predictor, genome, genome_size)
                if task_type == "Blast":
                    graph.add_input(predictor, "nr.db", database_size)
                graph.add_link(predictor, srna, f"{genome}.{task_type.lower()}", self.generate_long("PREDICTION"))
                self.finish(predictor)

            candidates = f"{genome}.srna"
            candidates_size = self.generate_long("CANDIDATES")
            for task_type in ANNOTATORS:
                annotator = self.new_task(task_type)
                graph.add_link(srna, annotator, candidates, candidates_size)
                if task_type.startswith("Blast"):
                    graph.add_input(annotator, "nr.db", database_size)
                graph.add_link(annotator, annotate, f"{genome}.{task_type.lower()}.out",
                               self.generate_long("ANNOTATION"))
                self.finish(annotator)
            self.finish(srna)

            graph.add_output(annotate, f"{genome}.annotated",
                             int(annotate.input_total_bytes * self.generate_double("ANNOTATE_RATIO")))
            self.finish(annotate)
