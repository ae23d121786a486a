from abc import ABC, abstractmethod
import numpy as np

class BaseFormat(ABC):
    def __init__(self):
        self.metadata = {}  # Format-specific details gathered while reading (counts, versions, ...)

    @abstractmethod
    def read(self, path: str, **kwargs) -> np.ndarray:
        """
        Reads the file and returns a structured numpy array of decoded splats.
        
        Args:
            path (str): Path to the file.
            **kwargs: Additional arguments.
            
        Returns:
            np.ndarray: Structured array laid out by GaussianStruct.define_dtype.
        """
        pass

    @abstractmethod
    def write(self, data: np.ndarray, path: str, **kwargs) -> None:
        """
        Writes the structured numpy array to the file.
        
        Args:
            data (np.ndarray): Structured array of decoded splats.
            path (str): Path to the output file.
            **kwargs: Additional arguments.
        """
        pass
