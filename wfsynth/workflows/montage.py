"""Montage astronomical mosaic workflow.

mProjectPP per image -> mDiffFit per overlapping image pair -> mConcatFit ->
mBgModel -> mBackground per image -> mImgtbl -> mAdd -> mShrink -> mJPEG.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

from wfsynth.sampling.distribution import truncated_normal, uniform
from wfsynth.sampling.memory_model import LinearMemoryModel
from wfsynth.workflows.base import Application
from wfsynth.workflows.dag import Task

RUNTIMES = {
    "mProjectPP": 1.73,
    "mDiffFit": 0.66,
    "mConcatFit": 143.26,
    "mBgModel": 384.49,
    "mBackground": 1.72,
    "mImgtbl": 2.78,
    "mAdd": 282.37,
    "mShrink": 66.10,
    "mJPEG": 0.64,
}

PEAK_MEMORY = {
    "mProjectPP": 14e6,
    "mDiffFit": 16e6,
    "mConcatFit": 11e6,
    "mBgModel": 18e6,
    "mBackground": 13e6,
    "mImgtbl": 12e6,
    "mShrink": 33e6,
    "mJPEG": 24e6,
}

# mConcatFit, mBgModel, mImgtbl, mAdd, mShrink, mJPEG
FIXED_TASKS = 6
HEADER = "region.hdr"


def overlap_pairs(num_images: int, num_overlaps: int) -> List[Tuple[int, int]]:
    """Pick image pairs, nearest neighbours first, as a tiled sky region would overlap."""
    pairs = []
    for distance in range(1, num_images):
        for i in range(num_images - distance):
            pairs.append((i, i + distance))
            if len(pairs) == num_overlaps:
                return pairs
    return pairs


class Montage(Application):

    NAMESPACE = "Montage"
    MIN_TASKS = FIXED_TASKS + 2 * 2 + 1

    def __init__(self, rng=None):
        super().__init__(rng)
        self.num_images = 0
        self.num_overlaps = 0

    def register_task_types(self) -> None:
        for task_type in RUNTIMES:
            if task_type == "mAdd":
                self.register_task_type(task_type, self.finish_add)
            else:
                self.register_task_type(task_type)

    def populate_distributions(self) -> None:
        d = self.distributions
        for task_type, mean in RUNTIMES.items():
            d[task_type] = truncated_normal(mean, (0.3 * mean) ** 2)
        d["IMAGE"] = truncated_normal(4.2e6, (0.2e6) ** 2)
        d["HEADER"] = uniform(300, 310)
        d["PROJECTED"] = truncated_normal(8.1e6, (0.6e6) ** 2)
        d["AREA"] = truncated_normal(8.1e6, (0.6e6) ** 2)
        d["DIFF_FIT"] = uniform(250, 300)
        d["TABLE_ROW"] = uniform(150, 200)
        d["OVERLAPS_PER_IMAGE"] = uniform(1.5, 3.0)
        d["SHRINK_RATIO"] = uniform(0.002, 0.004)
        d["JPEG_RATIO"] = uniform(0.05, 0.1)

        self.set_constant_memory(PEAK_MEMORY)
        # co-adding reads every corrected image
        self.memory_models["mAdd"] = LinearMemoryModel(slope=0.3, intercept=60e6, error_std=8e6, min_value=10e6)

    def process_args(self, args: Sequence[str]) -> None:
        parser = self.make_parser()
        opts = parser.parse_args(args)
        self.check_num_jobs(opts.num_jobs)

        remaining = opts.num_jobs - FIXED_TASKS
        ratio = self.generate_double("OVERLAPS_PER_IMAGE")
        num_images = max(2, int(remaining / (2 + ratio)))
        num_overlaps = remaining - 2 * num_images
        while num_overlaps > num_images * (num_images - 1) // 2:
            num_images += 1
            num_overlaps = remaining - 2 * num_images
        self.num_images = num_images
        self.num_overlaps = max(1, num_overlaps)

    def construct_workflow(self) -> None:
        graph = self.graph
        header_size = self.generate_long("HEADER")

        concat = self.new_task("mConcatFit")
        bg_model = self.new_task("mBgModel")
        imgtbl = self.new_task("mImgtbl")
        add = self.new_task("mAdd")
        shrink = self.new_task("mShrink")
        jpeg = self.new_task("mJPEG")

        projections = []
        for i in range(self.num_images):
            project = self.new_task("mProjectPP")
            graph.add_input(project, f"{i}.fits", self.generate_long("IMAGE"))
            graph.add_input(project, HEADER, header_size)
            projections.append(project)

        for i, j in overlap_pairs(self.num_images, self.num_overlaps):
            diff = self.new_task("mDiffFit")
            for k in (i, j):
                graph.add_link(projections[k], diff, f"p{k}.fits", self.generate_long("PROJECTED"))
                graph.add_link(projections[k], diff, f"p{k}_area.fits", self.generate_long("AREA"))
            graph.add_input(diff, HEADER, header_size)
            graph.add_link(diff, concat, f"fit.{i}.{j}.txt", self.generate_long("DIFF_FIT"))
            self.finish(diff)

        table_row = self.generate_long("TABLE_ROW")
        graph.add_link(concat, bg_model, "fits.tbl", table_row * len(concat.inputs))
        self.finish(concat)

        corrections = table_row * self.num_images
        for i, project in enumerate(projections):
            background = self.new_task("mBackground")
            graph.add_link(project, background, f"p{i}.fits", self.generate_long("PROJECTED"))
            graph.add_link(project, background, f"p{i}_area.fits", self.generate_long("AREA"))
            graph.add_link(bg_model, background, "corrections.tbl", corrections)
            self.finish(project)
            corrected = graph.add_link(background, add, f"c{i}.fits", self.generate_long("PROJECTED"))
            graph.add_link(background, imgtbl, corrected.name, corrected.size)
            self.finish(background)
        self.finish(bg_model)

        graph.add_link(imgtbl, add, "cimages.tbl", table_row * self.num_images)
        self.finish(imgtbl)

        graph.add_input(add, HEADER, header_size)
        mosaic = graph.add_link(add, shrink, "mosaic.fits", max(1, add.input_total_bytes // 2))
        self.finish(add)

        shrunken = graph.add_link(shrink, jpeg, "shrunken.fits",
                                  max(1, int(mosaic.size * self.generate_double("SHRINK_RATIO"))))
        self.finish(shrink)
        graph.add_output(jpeg, "shrunken.jpg", max(1, int(shrunken.size * self.generate_double("JPEG_RATIO"))))
        self.finish(jpeg)

    def finish_add(self, task: Task) -> None:
        # runtime grows with the number of co-added images
        scale = max(1.0, len(task.parents) / 100.0)
        self.complete(task, self.generate_double("mAdd") * scale)
