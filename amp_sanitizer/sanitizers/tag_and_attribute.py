"""Enforce the tag and attribute allow-list policy."""

from bs4 import Tag

from ..logger import get_logger
from ..policy import Policy, load_policy
from .base import BaseSanitizer

logger = get_logger(__name__)


class TagAndAttributeSanitizer(BaseSanitizer):
    """
    Walk every element and drop whatever the policy does not allow.

    Violations are handled per element, in document order:

    - tag not allowed: the element is unwrapped, keeping its children,
      unless the policy lists it under ``remove_with_content``, in which
      case the whole subtree is removed
    - attribute not allowed, or its value rejected: the attribute is removed
    - mandatory attribute missing after that: the whole subtree is removed

    Running the sanitizer again over its own output changes nothing.

    Args:
        policy_path: Optional path of a policy file replacing the bundled one
    """

    name = "tag_and_attribute"
    DEFAULT_ARGS = {"policy_path": None}

    def __init__(self, document, args=None, registry=None, policy: Policy | None = None):
        super().__init__(document, args, registry)
        self.policy = policy or load_policy(self.args["policy_path"])
        self.stats = {"unwrapped": 0, "removed": 0, "attributes_removed": 0}
        self._scripts: dict[str, bool | str] = {}

    def sanitize(self) -> None:
        for element in self.document.elements():
            if element.decomposed or element.parent is None:
                continue
            self._sanitize_element(element)

        self._scripts = self._collect_scripts()

        if any(self.stats.values()):
            logger.debug(
                f"Tag/attribute sanitizer: {self.stats['unwrapped']} unwrapped, "
                f"{self.stats['removed']} removed, "
                f"{self.stats['attributes_removed']} attribute(s) removed"
            )

    def _sanitize_element(self, element: Tag) -> None:
        spec = self.policy.get_tag(element.name)

        if spec is None:
            if element.name in self.policy.remove_with_content:
                logger.debug(f"Removing disallowed <{element.name}> with its content")
                element.decompose()
                self.stats["removed"] += 1
            else:
                logger.debug(f"Unwrapping disallowed <{element.name}>")
                element.unwrap()
                self.stats["unwrapped"] += 1
            return

        for name in list(element.attrs):
            value = element.attrs[name]
            if isinstance(value, list):
                value = " ".join(value)
            if not self.policy.validate_attribute(spec, name, value):
                logger.debug(f"Removing attribute {name}={value!r} from <{element.name}>")
                del element.attrs[name]
                self.stats["attributes_removed"] += 1

        for name in spec.mandatory_attributes:
            if not element.has_attr(name):
                logger.debug(f"Removing <{element.name}> missing mandatory attribute {name}")
                element.decompose()
                self.stats["removed"] += 1
                return

    def _collect_scripts(self) -> dict[str, bool | str]:
        scripts: dict[str, bool | str] = {}
        for element in self.document.elements():
            spec = self.policy.get_tag(element.name)
            if spec is not None and spec.extension:
                scripts[spec.extension] = True
        return scripts

    def get_scripts(self) -> dict[str, bool | str]:
        return dict(self._scripts)
