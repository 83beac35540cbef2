#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main entry point for StreamTree - Streaming Hoeffding Tree
Streams a CSV file through a Hoeffding tree in micro-batches and reports
prequential accuracy.

[main -> Main function to run a stream -> dependent functions are load_configuration, setup_logging_from_config, CSVStreamReader, HoeffdingTreeModel]
"""

import os
import sys
import argparse
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

script_dir = Path(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, str(script_dir))

from streams.example import Example
from streams.stream_reader import CSVStreamReader
from trees.hoeffding_tree import HoeffdingTreeModel
from utils.config import load_configuration, get_config_value, set_config_value
from utils.logging_utils import setup_logging_from_config, flush_logs, log_exception

def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Learn a Hoeffding tree from a CSV stream and report prequential accuracy"
    )
    parser.add_argument("data", help="CSV file to stream")
    parser.add_argument("--label", help="Label column (default: stream.label_column from the configuration)")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--batch-size", type=int, help="Records per micro-batch")
    parser.add_argument("--jobs", type=int, help="Parallel micro-batches learned at once (joblib n_jobs)")
    parser.add_argument("--show-tree", action="store_true", help="Print the tree after the stream ends")
    return parser.parse_args(argv)

def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Command-line values take precedence over the configuration file"""
    if args.label:
        set_config_value(config, 'stream.label_column', args.label)
    if args.batch_size:
        set_config_value(config, 'stream.batch_size', args.batch_size)
    if args.jobs:
        set_config_value(config, 'parallel.n_jobs', args.jobs)
    return config

def evaluate_batch(model: HoeffdingTreeModel, batch: List[Example]) -> float:
    """Weight of the examples the current model predicts correctly"""
    return sum(example.weight for example in batch if model.predict(example) == example.label_at(0))

def run_stream(model: HoeffdingTreeModel, reader: CSVStreamReader, n_jobs: int,
               backend: str = 'threading') -> Dict[str, float]:
    """
    Prequential run: every micro-batch is predicted before it is learned

    Batches are grouped by the worker count and each group is learned on
    parallel snapshots folded back into the model.

    Args:
        model: Model to train
        reader: Source of micro-batches
        n_jobs: joblib worker count, also the number of batches per group
        backend: joblib backend

    Returns:
        Dictionary with seen weight, correct weight, accuracy and deferred count
    """
    logger = logging.getLogger(__name__)

    group_size = n_jobs if n_jobs > 0 else max((os.cpu_count() or 1) + 1 + n_jobs, 1)
    seen = correct = 0.0
    deferred = 0
    group: List[List[Example]] = []

    def flush_group() -> int:
        if not group:
            return 0
        count = model.learn_batches_parallel(group, n_jobs=n_jobs, backend=backend)
        group.clear()
        return count

    for batch in reader.batches():
        seen += sum(example.weight for example in batch)
        correct += evaluate_batch(model, batch)
        group.append(batch)
        if len(group) >= group_size:
            deferred += flush_group()
            logger.info(f"Seen {seen:g}, prequential accuracy {correct / seen if seen else 0.0:.4f}")

    deferred += flush_group()

    return {
        'seen': seen,
        'correct': correct,
        'accuracy': correct / seen if seen else 0.0,
        'deferred': deferred
    }

def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the stream"""
    args = parse_arguments(argv)

    config = apply_overrides(load_configuration(args.config), args)

    setup_logging_from_config(config)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting {get_config_value(config, 'application.name')} "
                f"{get_config_value(config, 'application.version')}")

    label_column = get_config_value(config, 'stream.label_column')
    if not label_column:
        logger.error("No label column given, use --label or stream.label_column")
        return 2

    try:
        reader = CSVStreamReader(
            args.data,
            label_column,
            batch_size=get_config_value(config, 'stream.batch_size'),
            weight_column=get_config_value(config, 'stream.weight_column')
        )
        model = HoeffdingTreeModel.from_config(config, reader.num_classes, reader.feature_types)
        logger.info(f"Created {model!r}")

        start = time.time()
        results = run_stream(
            model,
            reader,
            n_jobs=get_config_value(config, 'parallel.n_jobs'),
            backend=get_config_value(config, 'parallel.backend')
        )
        elapsed = time.time() - start

    except Exception as e:
        log_exception(e, "Error running stream", logger)
        flush_logs()
        return 1

    logger.info(f"Stream finished in {elapsed:.2f}s: {results['seen']:g} weight seen, "
                f"{results['deferred']} deferred examples")
    print(f"Prequential accuracy: {results['accuracy']:.4f} over {results['seen']:g} weight")
    print(f"Tree: {model.num_nodes()} nodes, {model.num_leaves()} leaves, depth {model.tree_depth()}")

    if args.show_tree:
        print(model.description())

    flush_logs()
    return 0

if __name__ == "__main__":
    sys.exit(main())
