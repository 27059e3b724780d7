#!/bin/env python3
import json
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import cv2
import yaml

from common.exceptions import RouteLookupError, StateCode, TrafficMirrorException
from common.models.camera_info import CameraInfo
from common.models.detector_config import DetectorConfig, load_detector_config
from common.utils.log import TimeLog, log
from common.utils.transform_tree import Transform, TransformTree
from .detector import MapBasedDetector
from .map_loader import TrafficMirrorStore, load_route, load_vector_map
from .pose_source import TransformTreePoseSource
from .visualization import draw_rois


def load_camera_info(path) -> CameraInfo:
    with open(path, 'r') as f:
        return CameraInfo(**(yaml.safe_load(f) or {}))


def load_trajectory(path, map_frame: str = "map") -> TransformTree:
    """
    加载相机轨迹

    文件格式::

        frame_id: camera
        parent_frame_id: map
        static_transforms:
          - {frame_id: camera, parent_frame_id: base_link, translation: [..], rotation: [x, y, z, w]}
        poses:
          - {timestamp: 0.0, translation: [x, y, z], rotation: [x, y, z, w]}
    """
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    tree = TransformTree(root_frame=map_frame, cache_time=float('inf'))
    for item in data.get("static_transforms", []):
        tree.add_transform(Transform.from_quaternion(
            item["frame_id"], item["parent_frame_id"],
            item["translation"], item["rotation"], static=True))

    frame_id = data.get("frame_id", "camera")
    parent_frame_id = data.get("parent_frame_id", map_frame)
    for item in data.get("poses", []):
        tree.add_transform(Transform.from_quaternion(
            frame_id, parent_frame_id,
            item["translation"], item["rotation"], timestamp=float(item["timestamp"])))
    return tree


def render_path(output: str, stamp: float, per_stamp: bool) -> str:
    """绘制结果的输出路径，多个时刻时在文件名后追加时间戳"""
    if not per_stamp:
        return output
    path = Path(output)
    return str(path.with_name(f"{path.stem}_{stamp:.6f}{path.suffix}"))


def run_detection(params, vector_map, route, camera_info_path, trajectory, stamps: Tuple[float, ...],
                  image: Optional[str] = None, output: Optional[str] = None):
    config = load_detector_config(params) if params else DetectorConfig()
    store = TrafficMirrorStore()
    store.on_map(load_vector_map(vector_map))
    if route and not store.on_route(load_route(route)):
        raise RouteLookupError(f"failed to apply route {route}")

    camera_info = load_camera_info(camera_info_path)
    tree = load_trajectory(trajectory, config.map_frame)
    pose_source = TransformTreePoseSource(tree, config.map_frame, timeout=0.0)
    detector = MapBasedDetector(config, pose_source, store)

    results = []
    for stamp in stamps or (camera_info.header.stamp,):
        frame = camera_info.model_copy(update={"header": camera_info.header.model_copy(update={"stamp": stamp})})
        result = detector.on_camera_info(frame)
        results.append({"stamp": stamp, "output": result.to_dict() if result else None})
        if result and image and output:
            canvas = cv2.imread(image)
            if canvas is None:
                raise TrafficMirrorException(f"cannot read image {image}")
            cv2.imwrite(render_path(output, stamp, len(stamps) > 1), draw_rois(canvas, result))
    return results


@click.command()
@click.option('-p', '--params', type=click.Path(exists=True), help='detector parameter yaml')
@click.option('-m', '--map', 'vector_map', type=click.Path(exists=True), required=True, help='vector map yaml')
@click.option('-r', '--route', type=click.Path(exists=True), help='route yaml')
@click.option('-c', '--camera-info', type=click.Path(exists=True), required=True, help='camera info yaml')
@click.option('-t', '--trajectory', type=click.Path(exists=True), required=True, help='camera trajectory yaml')
@click.option('-s', '--stamp', 'stamps', type=float, multiple=True, help='frame timestamps, default camera info stamp')
@click.option('--image', type=click.Path(exists=True), help='image to draw rois on')
@click.option('-o', '--output', type=click.Path(), help='output path of the drawn image, suffixed with the stamp when several stamps are given')
@click.option('--profile', is_flag=True, help='print timing table')
def main(params, vector_map, route, camera_info, trajectory, stamps, image, output, profile):
    code = StateCode.success
    try:
        results = run_detection(params, vector_map, route, camera_info, trajectory, stamps, image, output)
        click.echo(json.dumps(results, indent=2))
    except TrafficMirrorException as e:
        log.error(str(e))
        code = e.code
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        log.error(str(e))
        code = StateCode.error_input_param
    if profile:
        click.echo(TimeLog().table())
    sys.exit(int(code))


if __name__ == '__main__':
    main()
