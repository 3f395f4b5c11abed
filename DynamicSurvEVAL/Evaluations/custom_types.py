from typing import Callable, List, Tuple, Union

import numpy as np
import pandas as pd
import torch

Numeric = Union[float, int, bool]
NumericArrayLike = Union[List[Numeric], Tuple[Numeric], np.ndarray, pd.Series, pd.DataFrame, torch.Tensor]
# G(s): maps time(s) to the probability of remaining uncensored past s
SurvivalFunction = Callable[[np.ndarray], np.ndarray]
