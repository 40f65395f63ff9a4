"""Configures NumPy so that floating point issues encountered during tests raise exceptions."""

import numpy as np


np.seterr(all='raise')
