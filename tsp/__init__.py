from .instance import InvalidInstanceError, TSPInstance, load_instance, read_instance
from .simulated_annealing import AnnealerState, TSPSolver, acceptance_probability, tour_cost, two_opt_reverse
from .stopping import AnyOf, MaxEpochs, TemperatureFloor, TimeLimit

__all__ = [
    "AnnealerState",
    "AnyOf",
    "InvalidInstanceError",
    "MaxEpochs",
    "TSPInstance",
    "TSPSolver",
    "TemperatureFloor",
    "TimeLimit",
    "acceptance_probability",
    "load_instance",
    "read_instance",
    "tour_cost",
    "two_opt_reverse",
]
