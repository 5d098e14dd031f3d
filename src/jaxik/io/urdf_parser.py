"""URDF parser producing a `RobotDescription`.

The parser records the model as declared: links and joints keep document
order and limits are left raw: None when the joint has no <limit>, and 0
for a side the <limit> element leaves out, as URDF specifies. Validation of
the tree and limit defaulting happen when the description is compiled.
"""

import logging
from typing import Tuple, Union

from lxml import etree

from jaxik.core.description import Joint, Link, RobotDescription
from jaxik.errors import StructureError

logger = logging.getLogger(__name__)


def load_urdf(urdf_path: str) -> RobotDescription:
    """Load a URDF file into a RobotDescription.

    Args:
        urdf_path: Path to the URDF file to load.

    Raises:
        OSError: if the file cannot be read.
        lxml.etree.XMLSyntaxError: if the file is not well-formed XML.
        StructureError: if a link or joint is missing required fields.
    """
    tree = etree.parse(str(urdf_path))
    description = _parse_robot(tree.getroot())
    logger.debug("Loaded '%s' from %s", description.name, urdf_path)
    return description


def parse_urdf_string(urdf: Union[str, bytes]) -> RobotDescription:
    """Parse URDF XML text into a RobotDescription."""
    if isinstance(urdf, str):
        urdf = urdf.encode()
    return _parse_robot(etree.fromstring(urdf))


def _parse_robot(root) -> RobotDescription:
    if root.tag != "robot":
        raise StructureError(f"Expected <robot> root element, found <{root.tag}>")

    # Only direct children: <transmission> blocks also contain <joint> tags
    links = tuple(_parse_link(elem) for elem in root.findall("link"))
    joints = tuple(_parse_joint(elem) for elem in root.findall("joint"))
    return RobotDescription(name=root.get("name", "robot"), links=links, joints=joints)


def _parse_link(elem) -> Link:
    name = elem.get("name")
    if not name:
        raise StructureError("<link> without a name")
    return Link(name=name)


def _parse_joint(elem) -> Joint:
    name = elem.get("name")
    joint_type = elem.get("type")
    if not name or not joint_type:
        raise StructureError("<joint> requires both 'name' and 'type'")

    parent_elem = elem.find("parent")
    child_elem = elem.find("child")
    if parent_elem is None or child_elem is None:
        raise StructureError(f"Joint '{name}' needs <parent> and <child>")

    origin_elem = elem.find("origin")
    xyz = _vector(origin_elem, "xyz", "0 0 0", name)
    rpy = _vector(origin_elem, "rpy", "0 0 0", name)
    axis = _vector(elem.find("axis"), "xyz", "1 0 0", name)

    lower = upper = None
    limit_elem = elem.find("limit")
    if limit_elem is not None:
        # URDF: a <limit> without lower or upper means 0 on that side
        lower = _limit_value(limit_elem.get("lower", "0"), name)
        upper = _limit_value(limit_elem.get("upper", "0"), name)

    return Joint(
        name=name,
        joint_type=joint_type,
        parent=parent_elem.get("link"),
        child=child_elem.get("link"),
        xyz=xyz,
        rpy=rpy,
        axis=axis,
        lower=lower,
        upper=upper,
    )


def _vector(elem, attribute: str, default: str, joint_name: str) -> Tuple[float, float, float]:
    text = default if elem is None else elem.get(attribute, default)
    try:
        values = tuple(float(x) for x in text.split())
    except ValueError:
        raise StructureError(f"Joint '{joint_name}': bad {attribute}=\"{text}\"") from None
    if len(values) != 3:
        raise StructureError(f"Joint '{joint_name}': {attribute} needs 3 values, got \"{text}\"")
    return values


def _limit_value(text: str, joint_name: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise StructureError(f"Joint '{joint_name}': bad limit value \"{text}\"") from None
