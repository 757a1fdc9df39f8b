import numpy as np


def minavgmax(d):
    return (f(d) for f in [np.min, np.average, np.max])
