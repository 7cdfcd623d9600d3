from abc import ABC, abstractmethod
from enum import Enum
from typing import List


class PlatformEnum(Enum):
    """The list of platforms whose native trust store can be enumerated.
    """

    LINUX = 1
    ANDROID = 2
    MACOS = 3
    WINDOWS = 4


class StoreUnavailableError(Exception):
    """The platform trust store could not be opened or enumerated.
    """


class StoreEnumeratorInterface(ABC):
    @abstractmethod
    def enumerate_trust_anchors(self) -> List[bytes]:
        """Return the DER bytes of every trust anchor in the platform store, in the store's own order.
        """
        pass
