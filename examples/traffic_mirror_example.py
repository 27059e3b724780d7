"""
交通反射镜检测使用示例
演示地图加载、路线筛选、位姿时间窗口采样与ROI计算
"""

import numpy as np
from scipy.spatial.transform import Rotation as R

from common.models.camera_info import CameraInfo, CameraIntrinsics, Header
from common.models.detector_config import DetectorConfig
from common.models.vector_map import LaneletRoute, VectorMap
from common.utils.log import TimeLog
from common.utils.transform_tree import Transform, TransformTree
from onboard.traffic_mirror import MapBasedDetector, TrafficMirrorStore, TransformTreePoseSource

# 相机坐标系（x右, y下, z前）在车体坐标系（x前, y左, z上）下的姿态
CAMERA_ROTATION = np.array([
    [0.0, 0.0, 1.0],
    [-1.0, 0.0, 0.0],
    [0.0, -1.0, 0.0],
])


def create_vector_map() -> VectorMap:
    """创建包含两个反射镜的地图，其中一个为solid类型"""
    return VectorMap(
        points=[
            {"id": 1, "x": 15.0, "y": 2.0, "z": 2.0},
            {"id": 2, "x": 15.0, "y": 1.0, "z": 1.2},
            {"id": 3, "x": 40.0, "y": -1.0, "z": 2.0},
            {"id": 4, "x": 40.0, "y": -2.0, "z": 1.2},
        ],
        linestrings=[
            {"id": 1001, "points": [1, 2], "attributes": {"type": "traffic_mirror", "subtype": "mirror"}},
            {"id": 1002, "points": [3, 4], "attributes": {"type": "traffic_mirror", "subtype": "solid"}},
        ],
        regulatory_elements=[
            {"id": 2001, "subtype": "traffic_mirror", "parameters": {"traffic_mirrors": [1001, 1002]}},
        ],
        lanelets=[
            {"id": 3001, "regulatory_elements": [2001]},
            {"id": 3002},
        ],
    )


def create_transform_tree() -> TransformTree:
    """车辆沿x轴以10m/s行驶，相机安装在车顶前方"""
    tree = TransformTree(root_frame="map", cache_time=float('inf'))
    tree.add_transform(Transform(
        frame_id="camera",
        parent_frame_id="base_link",
        translation=np.array([1.5, 0.0, 1.5]),
        rotation=CAMERA_ROTATION,
        timestamp=0.0,
        static=True
    ))
    for i in range(11):
        t = i * 0.1
        tree.add_transform(Transform(
            frame_id="base_link",
            parent_frame_id="map",
            translation=np.array([10.0 * t, 0.0, 0.0]),
            rotation=R.from_euler("z", 0.01 * i).as_matrix(),
            timestamp=t
        ))
    return tree


def print_rois(title, roi_array):
    print(title)
    if not roi_array.rois:
        print("  (无)")
    for item in roi_array.rois:
        roi = item.roi
        print(f"  id={item.traffic_mirror_id}: x={roi.x_offset}, y={roi.y_offset}, "
              f"w={roi.width}, h={roi.height}")


def main():
    """主函数"""
    print("交通反射镜检测示例")
    print("=" * 50)

    store = TrafficMirrorStore()
    store.on_map(create_vector_map())

    config = DetectorConfig(
        max_vibration_pitch=0.01745329251,
        max_vibration_yaw=0.01745329251,
        max_vibration_height=0.5,
        max_vibration_width=0.5,
        max_vibration_depth=0.5,
        min_timestamp_offset=-0.3,
        max_timestamp_offset=0.0,
        timestamp_sample_len=0.02
    )
    pose_source = TransformTreePoseSource(create_transform_tree(), timeout=0.0)
    detector = MapBasedDetector(config, pose_source, store)

    camera_info = CameraInfo(
        header=Header(stamp=0.5, frame_id="camera"),
        width=1920,
        height=1080,
        intrinsics=CameraIntrinsics(fx=1000.0, fy=1000.0, cx=960.0, cy=540.0, k1=-0.05)
    )

    print("\n=== 全图反射镜 ===")
    output = detector.on_camera_info(camera_info)
    print_rois("粗略ROI:", output.rough_rois)
    print_rois("期望ROI:", output.expect_rois)

    print("\n=== 路线上的反射镜 ===")
    store.on_route(LaneletRoute(segments=[{"primitives": [{"id": 3002}]}]))
    output = detector.on_camera_info(camera_info)
    print_rois("粗略ROI:", output.rough_rois)

    print("\n=== 耗时统计 ===")
    print(TimeLog().table())

    print("\n示例运行完成！")


if __name__ == "__main__":
    main()
