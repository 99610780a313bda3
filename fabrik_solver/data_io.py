"""
Data exchange
Structure definitions and snapshots (JSON), target keyframe tracks and pose export
"""
import json
import numpy as np
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError
from .model.joint import Joint, JointType, BallJoint, HingeJoint
from .model.bone import Bone, BoneConnectionPoint
from .model.chain import Chain, ChainBuilder, BaseboneConstraintType
from .model.structure import Structure
from .utils.vector_utils import as_vector, perpendicular, normalize


def _enum_value(enum_cls, value: str, label: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ConfigurationError(f"Unknown {label}: {value!r}") from e


def joint_from_dict(data: Optional[Dict]) -> Joint:
    """
    Create a joint from its JSON description

    {"type": "ball", "rotor_constraint_degs": 45}
    {"type": "global_hinge" | "local_hinge", "rotation_axis": [x,y,z], "reference_axis": [x,y,z],
     "clockwise_degs": 90, "anticlockwise_degs": 90}

    :param data: joint dict, None for an unconstrained ball joint
    :return: BallJoint or HingeJoint
    """
    if data is None:
        return BallJoint()

    joint_type = _enum_value(JointType, data.get('type', 'ball'), "joint type")
    if joint_type == JointType.BALL:
        return BallJoint(data.get('rotor_constraint_degs', 180.0))

    rotation_axis = normalize(data['rotation_axis'])
    reference_axis = data.get('reference_axis')
    if reference_axis is None:
        reference_axis = perpendicular(rotation_axis)
    return HingeJoint(joint_type, rotation_axis, reference_axis,
                      data.get('clockwise_degs', 180.0),
                      data.get('anticlockwise_degs', 180.0))


def joint_to_dict(joint: Joint) -> Dict:
    if isinstance(joint, BallJoint):
        return {'type': JointType.BALL.value, 'rotor_constraint_degs': joint.rotor_constraint_degs}
    return {
        'type': joint.joint_type.value,
        'rotation_axis': joint.rotation_axis.tolist(),
        'reference_axis': joint.reference_axis.tolist(),
        'clockwise_degs': joint.clockwise_constraint_degs,
        'anticlockwise_degs': joint.anticlockwise_constraint_degs,
    }


def _bone_from_dict(data: Dict, start: Optional[np.ndarray]) -> Bone:
    joint = joint_from_dict(data.get('joint'))
    name = data.get('name', '')
    if 'start' in data and 'end' in data:
        return Bone(data['start'], data['end'], joint=joint, name=name)
    if start is None:
        raise ConfigurationError("The first bone of a chain needs a start location or the chain a base_location")
    return Bone.from_direction(start, data['direction'], data['length'], joint=joint, name=name)


def chain_from_dict(data: Dict) -> Chain:
    """
    Create a chain from its JSON description. The connection (if any) is recorded on the chain and
    applied when the chain is added to a structure.

    Bones are given either as {"direction", "length"} (each starting at the previous bone's end) or as
    absolute {"start", "end"} locations.
    """
    bones_data = data.get('bones', [])
    if not bones_data:
        raise ConfigurationError(f"Chain {data.get('name', '')!r} has no bones")

    builder = ChainBuilder().named(data.get('name', ''))
    base_location = data.get('base_location')
    if base_location is not None:
        start = as_vector(base_location)
    elif data.get('connection') is not None:
        # connected chains are defined about the origin and moved onto the connection point
        start = np.zeros(3)
    else:
        start = None
    for bone_data in bones_data:
        bone = _bone_from_dict(bone_data, start)
        builder.add_bone(bone)
        start = bone.end_location

    constraint = data.get('basebone_constraint')
    if constraint is not None:
        constraint_type = _enum_value(BaseboneConstraintType, constraint['type'], "basebone constraint type")
        if constraint_type.is_rotor:
            builder.with_rotor_basebone_constraint(constraint_type, constraint['axis'],
                                                   constraint.get('angle_degs', 180.0))
        elif constraint_type.is_hinge:
            builder.with_hinge_basebone_constraint(constraint_type, constraint['rotation_axis'],
                                                   constraint.get('clockwise_degs', 180.0),
                                                   constraint.get('anticlockwise_degs', 180.0),
                                                   constraint.get('reference_axis'))

    builder.with_fixed_base_mode(data.get('fixed_base_mode', True))

    connection = data.get('connection')
    if connection is not None:
        point = _enum_value(BoneConnectionPoint, connection.get('point', 'end'), "connection point")
        builder.connected_to(int(connection['chain']), int(connection['bone']), point)

    if data.get('embedded_target') is not None:
        builder.with_embedded_target(data['embedded_target'])
    if data.get('solver'):
        builder.with_solver_settings(**data['solver'])

    chain = builder.build()
    if base_location is not None:
        chain.set_base_location(base_location)
    if data.get('use_embedded_target') is False:
        chain.set_use_embedded_target(False)
    return chain


def structure_from_dict(data: Dict) -> Structure:
    """
    Create a structure from a definition or from a snapshot made by structure_to_dict

    Connected chains defined with direction/length bones are translated onto their connection point;
    chains given with absolute start/end locations are connected in place.
    """
    structure = Structure(data.get('name', ''))
    for chain_data in data.get('chains', []):
        chain = chain_from_dict(chain_data)
        absolute = all('start' in bone for bone in chain_data['bones'])
        connection = chain.connection
        if connection is not None and absolute:
            structure.connect_chain(chain, connection.parent_chain_index, connection.parent_bone_index,
                                    connection.connection_point, translate=False)
        else:
            structure.add_chain(chain)
    return structure


def chain_to_dict(chain: Chain) -> Dict:
    data: Dict[str, Any] = {
        'name': chain.name,
        'base_location': chain.base_location.tolist(),
        'fixed_base_mode': chain.fixed_base_mode,
        'bones': [
            {
                'name': bone.name,
                'start': bone.start_location.tolist(),
                'end': bone.end_location.tolist(),
                'length': bone.length,
                'joint': joint_to_dict(bone.joint),
            }
            for bone in chain.bones
        ],
        'solver': {
            'max_iterations': chain.max_iterations,
            'min_iterations': chain.min_iterations,
            'solve_distance_threshold': chain.solve_distance_threshold,
            'min_iteration_change': chain.min_iteration_change,
        },
        'embedded_target': chain.embedded_target_location.tolist(),
        'use_embedded_target': chain.use_embedded_target,
    }

    constraint_type = chain.basebone_constraint_type
    if constraint_type.is_rotor:
        data['basebone_constraint'] = {
            'type': constraint_type.value,
            'axis': chain.basebone_constraint_uv.tolist(),
            'angle_degs': chain.base_bone.joint.rotor_constraint_degs,
        }
    elif constraint_type.is_hinge:
        joint = chain.base_bone.joint
        data['basebone_constraint'] = {
            'type': constraint_type.value,
            'rotation_axis': joint.rotation_axis.tolist(),
            'reference_axis': joint.reference_axis.tolist(),
            'clockwise_degs': joint.clockwise_constraint_degs,
            'anticlockwise_degs': joint.anticlockwise_constraint_degs,
        }

    if chain.connection is not None:
        data['connection'] = {
            'chain': chain.connection.parent_chain_index,
            'bone': chain.connection.parent_bone_index,
            'point': chain.connection.connection_point.value,
        }
    return data


def structure_to_dict(structure: Structure) -> Dict:
    """
    Snapshot of the data model, including current bone locations; structure_from_dict restores it
    """
    return {
        'name': structure.name,
        'chains': [chain_to_dict(chain) for chain in structure.chains],
    }


def load_structure(json_path: str) -> Structure:
    """
    Load a structure definition from a JSON file

    :param json_path: structure.json file path
    :return: Structure
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return structure_from_dict(data)


def save_structure(structure: Structure, json_path: str):
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump(structure_to_dict(structure), f, indent=2, ensure_ascii=False)


def load_targets(json_path: str) -> List[Dict]:
    """
    Load a target track from targets.json

    :param json_path: targets.json file path
    :return: keyframes sorted by frame, each {"frame": int, "pos": np.ndarray}
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    keyframes = []
    for item in data:
        keyframes.append({
            'frame': int(item['frame']),
            'pos': as_vector(item['pos']),
        })

    keyframes.sort(key=lambda kf: kf['frame'])
    return keyframes


def interpolate_targets(keyframes: List[Dict], frame: int) -> np.ndarray:
    """
    Linear interpolation of the target position between keyframes; clamped to the first/last keyframe

    :param keyframes: keyframes sorted by frame
    :param frame: current frame
    :return: target position (Vec3)
    """
    if not keyframes:
        raise ValueError("No keyframes to interpolate")

    if frame <= keyframes[0]['frame']:
        return keyframes[0]['pos'].copy()
    if frame >= keyframes[-1]['frame']:
        return keyframes[-1]['pos'].copy()

    start_kf = keyframes[0]
    end_kf = keyframes[-1]
    for i in range(len(keyframes) - 1):
        if keyframes[i]['frame'] <= frame < keyframes[i + 1]['frame']:
            start_kf = keyframes[i]
            end_kf = keyframes[i + 1]
            break

    span = end_kf['frame'] - start_kf['frame']
    alpha = 0.0 if span == 0 else (frame - start_kf['frame']) / span
    return (1.0 - alpha) * start_kf['pos'] + alpha * end_kf['pos']


def pose_snapshot(structure: Structure) -> List[Dict]:
    """
    Read-only copy of the current pose of every chain

    :return: per chain {"name", "length", "solve_distance", "bones": [{"name", "start", "end", "direction"}]}
    """
    snapshot = []
    for chain in structure.chains:
        snapshot.append({
            'name': chain.name,
            'length': chain.length,
            'solve_distance': chain.current_solve_distance,
            'bones': [
                {
                    'name': bone.name,
                    'start': bone.start_location.copy(),
                    'end': bone.end_location.copy(),
                    'direction': bone.direction_uv.copy(),
                }
                for bone in chain.bones
            ],
        })
    return snapshot


def _to_jsonable(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, (float, np.floating)):
        # inf is not valid JSON
        return float(value) if np.isfinite(value) else None
    return value


def export_animation(frames: List[Dict], output_path: str):
    """
    Write solved frames to animation.json

    :param frames: list of {"frame": int, "target": Vec3, "chains": pose_snapshot(...)}
    :param output_path: output file path
    """
    output = {'frames': _to_jsonable(frames)}
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
