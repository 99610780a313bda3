"""
Headless batch runner
Loads a structure and a target track, solves the structure once per frame and exports the poses as JSON.

Usage: python -m fabrik_solver.run_solver [config.json]
"""
import json
import logging
import os
import sys
import time
from typing import Dict, List, Optional

from .data_io import load_structure, load_targets, interpolate_targets, pose_snapshot, export_animation
from .errors import ConfigurationError


def run_solver(config_path: str = "config.json") -> Optional[List[Dict]]:
    """
    Run the per-frame solve described by a JSON config

    Config keys: structure_path, targets_path, output_path (default animation.json), and optionally
    max_iterations, min_iterations, solve_distance_threshold (applied to every chain) and log_level.

    :param config_path: config file path
    :return: solved frames, or None when loading failed
    """
    # 1. config
    if not os.path.exists(config_path):
        print(f"❌ Config file not found: {config_path}")
        return None

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    log_level = config.get('log_level')
    if log_level:
        logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    print("----------- FABRIK Solver Headless -----------")
    print(f"Config loaded: {config_path}")

    structure_path = config.get('structure_path')
    targets_path = config.get('targets_path')
    output_path = config.get('output_path', 'animation.json')

    settings = {
        key: config[key]
        for key in ('max_iterations', 'min_iterations', 'solve_distance_threshold')
        if key in config
    }

    # 2. structure
    print(f"Loading structure: {structure_path} ...")
    try:
        structure = load_structure(structure_path)
        for chain in structure.chains:
            chain.set_solver_settings(**settings)
    except (OSError, ValueError, KeyError) as e:
        print(f"❌ Failed to load structure: {e}")
        return None
    print(f"Structure loaded, {structure.chain_count} chains")

    # 3. targets
    print(f"Loading targets: {targets_path} ...")
    try:
        keyframes = load_targets(targets_path)
        total_frames = keyframes[-1]['frame']
        print(f"Targets loaded, {len(keyframes)} keyframes over {total_frames} frames")
    except (OSError, ValueError, KeyError, IndexError) as e:
        print(f"❌ Failed to load targets: {e}")
        return None

    # 4. solve frame by frame
    solved_frames = []
    start_time = time.time()
    try:
        for frame in range(total_frames + 1):
            if frame % 10 == 0:
                sys.stdout.write(f"\rProgress: {frame}/{total_frames}")
                sys.stdout.flush()

            target = interpolate_targets(keyframes, frame)
            distances = structure.solve_for_target(target)
            solved_frames.append({
                'frame': frame,
                'target': target,
                'distances': distances,
                'chains': pose_snapshot(structure),
            })
    except ConfigurationError as e:
        print(f"\n❌ Structure cannot be solved: {e}")
        return None
    print()

    duration = time.time() - start_time
    print(f"Solve finished in {duration:.2f} s")

    # 5. export
    print(f"Exporting to: {output_path} ...")
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    export_animation(solved_frames, output_path)
    print("✅ Done!")
    return solved_frames


def main():
    if len(sys.argv) > 1:
        run_solver(sys.argv[1])
    else:
        run_solver()


if __name__ == "__main__":
    main()
