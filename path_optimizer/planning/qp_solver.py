"""
OSQP solver adapter.

Wraps one sparse QP solve. The Hessian of a horizon is cached so repeated
calls with the same number of samples skip rebuilding the cost; the OSQP
workspace itself is set up fresh for every solve so identical problems
give identical results.
"""

import logging
from typing import Optional

import numpy as np
import osqp
from scipy import sparse

from ..models.config import Config
from .qp_formulator import QpFormulator, num_variables

logger = logging.getLogger(__name__)

SOLVED_STATUSES = ('solved', 'solved inaccurate')


class QpSolver:
    """
    Sparse QP solver for the path optimization problem.

    Attributes:
        config: Solver settings and cost weights
        horizon: Horizon the cached Hessian was built for (None if torn down)
        status: Status string of the last solve
    """

    def __init__(self, config: Config, formulator: Optional[QpFormulator] = None):
        self.config = config
        self.formulator = formulator or QpFormulator(config)
        self.horizon: Optional[int] = None
        self.status: Optional[str] = None
        self._hessian: Optional[sparse.csc_matrix] = None

    def is_initialized_for(self, horizon: int) -> bool:
        return self._hessian is not None and self.horizon == horizon

    def initialize(self, horizon: int):
        """
        Build the Hessian for a horizon.

        Raises:
            ValueError: If the solver is still initialized for another horizon
        """
        if self._hessian is not None and self.horizon != horizon:
            raise ValueError(f"Solver initialized for horizon {self.horizon}; "
                             f"reset() before switching to {horizon}")
        if self._hessian is None:
            self._hessian = self.formulator.hessian(horizon)
            self.horizon = horizon

    def reset(self):
        """Tear down the cached problem."""
        self._hessian = None
        self.horizon = None
        self.status = None

    def solve(self, constraint_matrix: sparse.csc_matrix,
              lower_bound: np.ndarray, upper_bound: np.ndarray) -> Optional[np.ndarray]:
        """
        Solve min 1/2 x^T P x  s.t.  lower <= A x <= upper.

        Args:
            constraint_matrix: Sparse constraint matrix A
            lower_bound: Lower bound vector
            upper_bound: Upper bound vector

        Returns:
            Optimal decision vector, or None if the problem is infeasible or
            the solver failed
        """
        if self._hessian is None:
            raise ValueError("Solver is not initialized")
        n_var = num_variables(self.horizon)
        if constraint_matrix.shape[1] != n_var:
            raise ValueError(f"Constraint matrix has {constraint_matrix.shape[1]} columns, "
                             f"expected {n_var} for horizon {self.horizon}")

        empty = np.flatnonzero(lower_bound > upper_bound)
        if len(empty):
            self.status = 'primal infeasible'
            logger.warning(f"QP infeasible: {len(empty)} constraints have an empty interval "
                           f"(first at row {empty[0]})")
            return None

        solver = osqp.OSQP()
        try:
            solver.setup(self._hessian, np.zeros(n_var), sparse.csc_matrix(constraint_matrix),
                         lower_bound, upper_bound,
                         verbose=False,
                         warm_starting=False,
                         polishing=self.config.solver_polish,
                         max_iter=self.config.solver_max_iter,
                         eps_abs=self.config.solver_eps_abs,
                         eps_rel=self.config.solver_eps_rel)
        except ValueError as e:
            self.status = 'setup failed'
            logger.warning(f"QP setup failed: {e}")
            return None

        result = solver.solve()
        self.status = str(result.info.status)
        if (self.status not in SOLVED_STATUSES or result.x is None
                or not np.all(np.isfinite(result.x))):
            logger.warning(f"QP solver failed with status '{self.status}'")
            return None
        logger.info("QP succeeded.")
        logger.debug(f"QP solved in {result.info.iter} iterations")
        return np.array(result.x, dtype=float)
