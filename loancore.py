# Copyright (C) Inco - All Rights Reserved.
#
# Unauthorized copying of this file, via any medium, is strictly prohibited. Proprietary and confidential.
#
# [SIGN CONVENTION]
#
# The formulas follow the spreadsheet cash flow convention. Money leaving your pocket is negative, money entering it is
# positive. So, when you borrow one million, the present value is positive and the payments come out negative.
#
#   >>> pmt(0.049 / 12, 360, 1000000.0)  # doctest: +SKIP
#   -5307.267206228046
#
# The "Loan" class sits on the lender's side of the table. It feeds the formulas with a negative present value, and
# reports positive payments, principals and interests.
#
# [TIMING]
#
# Payments happen either at the end of each period, "Timing.END", or at its beginning, "Timing.BEGIN". The enumeration
# is an integer on purpose: every formula multiplies the periodic rate by it, "(1 + rate * timing)".
#
# [ZERO RATE]
#
# The annuity factor, "((1 + r) ** n - 1) / r", has a removable singularity at "r = 0". It is resolved to its limit,
# "n", inside "_fvifa". That's the only zero rate special case the closed form formulas need.
#
# [NUMERIC POLICY]
#
# Double precision floats, no internal rounding. Formulas never raise because of the numbers they're given. They run
# under "numpy.errstate", so a division by zero becomes an infinity, and the log of a negative number becomes a NaN.
# Degenerate cases are signalled with sentinels:
#
#   • "ipmt" and "ppmt" return zero for periods outside "[1, nper]".
#
#   • "nper" returns zero for non positive rates (unless the rate is exactly zero and there is a payment), and when the
#     logarithm argument isn't positive.
#
#   • "rate" returns its last estimate, which may be NaN or unstable. Check it with "math.isfinite".
#
# [RATE SOLVER]
#
# The rate is found by the secant method. The first pair of points is the null rate and the guess. Iteration stops
# when two successive residuals are closer than "Config.accuracy", when "Config.max_iterations" is reached, or when a
# residual turns into NaN. Near zero the residual is replaced by its first order expansion.
#
# [SCHEDULE]
#
# Schedules cover every period, from 1 to "Loan.periods". The remaining balance of a row is the loan amount minus the
# principal repaid up to, and including, that row. Rows are rounded on output, half away from zero.
#
# [WEAKNESSES]
#
#   • The equal principal interest is computed from the count of remaining periods, not from a running balance. Both
#     agree because the principal portion is constant. A schedule with irregular amortizations would need the balance.
#
#   • The monthly rate is the nominal annual rate divided by twelve. There's no day count, "Basis" is informative only.
#

'''
Loancore.

Time value of money functions, with spreadsheet names and argument order: "pmt", "ipmt", "ppmt", "pv", "fv", "nper"
and "rate". On top of them, amortization schedules for loans repaid with equal payments (Price) or with equal
principal portions (SAC).

  • rate: the interest rate per period.

  • nper: the total number of payment periods.

  • per: a payment number, from 1 to "nper".

  • pv: the present value, what a series of future payments is worth now. The principal of a loan.

  • fv: the future value, the cash balance wanted after the last payment.

  • pmt: the payment made each period, constant over the life of the annuity.

  • timing: payments at the end of the period, "Timing.END", or at its beginning, "Timing.BEGIN".
'''

# Python.
import enum
import math
import typing as t
import decimal
import logging
import functools
import dataclasses
import importlib.metadata

# Libs.
import numpy as np
import typeguard

# Loancore version (http://versioningit.readthedocs.io/en/stable/runtime-version.html).
__version__ = importlib.metadata.version('loancore') if 'loancore' in importlib.metadata.packages_distributions() else 'DEV'

# Logger object.
_LOG = logging.getLogger('loancore')

# Months in a year.
_MONTHS = 12

# IEEE 754 arithmetic, without warnings: divisions by zero yield infinities, invalid operations yield NaN.
_IEEE = functools.partial(np.errstate, all='ignore')

# Enumerations. {{{
class Timing(enum.IntEnum):
    '''When payments are due within a period.'''

    END = 0

    BEGIN = 1

class Method(enum.Enum):
    '''
    Loan repayment methods.

      • "EQUAL_PAYMENT", the Price system. Every installment has the same value. The interest portion shrinks as the
        principal portion grows.

      • "EQUAL_PRINCIPAL", the SAC system. Every installment amortizes the same principal. Installments shrink along
        with the interest over the declining balance.
    '''

    EQUAL_PAYMENT = 'equal-payment'

    EQUAL_PRINCIPAL = 'equal-principal'

class Basis(enum.IntEnum):
    '''
    Day count bases.

      0. MSRB/NASD 30/360. Months have 30 days, years have 360. A 31st ending day becomes the 30th when the starting day
         is the 30th or the 31st. A 31st starting day becomes the 30th.

      1. Actual/Actual. The serial difference between the dates.

      2. Actual/360. Serial difference, 360 day years.

      3. Actual/365. Serial difference, 365 day years. Short term and Canadian bonds only.

      4. 30E/360. Both the 31st starting and ending days become the 30th.

      5. 30E+/360. A 31st starting day becomes the 30th, a 31st ending day becomes the 1st of the following month.

    None of the formulas of this module count days. These are carried for callers that do.
    '''

    MSRB_30_360 = 0

    ACT_ACT = 1

    ACT_360 = 2

    ACT_365 = 3

    E30_360 = 4

    E30P_360 = 5
# }}}

# Configuration. {{{
@dataclasses.dataclass(frozen=True)
class Config:
    '''
    Tunables of the rate solver, and of the schedules.

    Instances are immutable. Derive new ones with "dataclasses.replace".

    >>> dataclasses.replace(DEFAULT_CONFIG, precision=4)
    Config(accuracy=1e-06, max_iterations=100, precision=4)
    '''

    # The secant solver stops when two successive residuals are closer than this.
    accuracy: float = 1e-6

    # The secant solver gives up after this many iterations.
    max_iterations: int = 100

    # Decimal places of the monetary values of schedules and totals.
    precision: int = 2

    def __post_init__(self) -> None:
        typeguard.check_type(self.accuracy, float)
        typeguard.check_type(self.max_iterations, int)
        typeguard.check_type(self.precision, int)

        if not self.accuracy > 0:
            raise ValueError(f'"accuracy" must be positive, got {self.accuracy}')

        if self.max_iterations < 1:
            raise ValueError(f'"max_iterations" must be greater than, or equal to, one, got {self.max_iterations}')

        if self.precision < 0:
            raise ValueError(f'"precision" must not be negative, got {self.precision}')

# Default configuration.
DEFAULT_CONFIG = Config()
# }}}

# Helpers. {{{
@typeguard.typechecked
def round_half_up(value: float, precision: int = 2) -> float:
    '''
    Rounds a value to a number of decimal places, with halves going away from zero.

    The decimal quantization works on the shortest representation of the float, the one a person reads. The builtin
    "round" works on the binary value, and rounds halves to even.

    >>> round_half_up(2.675)
    2.68
    >>> round(2.675, 2)
    2.67
    >>> round_half_up(-0.125)
    -0.13
    >>> round_half_up(1234.5678, 0)
    1235.0
    >>> round_half_up(-0.001)
    0.0

    Non finite values pass through.

    >>> round_half_up(float('inf'))
    inf
    '''

    if not math.isfinite(value):
        return value

    exp = decimal.Decimal(1).scaleb(-precision)
    val = decimal.Decimal(str(float(value))).quantize(exp, rounding=decimal.ROUND_HALF_UP)

    return float(val) + 0.0  # Adding zero drops the sign of a negative zero.

def _pvif(rate: float, nper: int) -> float:
    '''
    Present value interest factor, "(1 + rate) ** nper".

    >>> float(_pvif(0.5, 2))
    2.25
    '''

    return np.power(np.float64(1 + rate), nper)

def _fvifa(rate: float, nper: int) -> float:
    '''
    Future value interest factor of an annuity, "((1 + rate) ** nper - 1) / rate".

    >>> float(_fvifa(0.5, 2))
    2.5

    At a null rate it is the number of periods.

    >>> float(_fvifa(0.0, 12))
    12.0
    '''

    if rate == 0:
        return np.float64(nper)

    return (np.power(np.float64(1 + rate), nper) - 1) / rate

def _growth(rate: float, nper: int) -> float:
    return np.exp(nper * np.log(np.float64(1 + rate)))

def _interest(rate: float, per: int, pv: float, payment: float) -> float:
    '''Interest accrued on the balance left after "per" payments.'''

    growth = _pvif(rate, per)

    return -(pv * growth * rate + payment * (growth - 1))
# }}}

# Public API. Annuity formulas. {{{
@typeguard.typechecked
def pmt(rate: float, nper: int, pv: float, fv: float = 0.0, timing: Timing = Timing.END) -> float:
    '''
    Returns the payment for a loan based on constant payments and a constant interest rate.

                  fv + pv * (1 + rate) ** nper
      pmt = - ------------------------------------------------
              (1 + rate * timing) * ((1 + rate) ** nper - 1) / rate

    At a null rate this is "-(fv + pv) / nper".

    >>> round_half_up(pmt(0.07 / 12, 12, -1000000.0))
    86526.75
    >>> round_half_up(pmt(0.0, 12, 1200.0))
    -100.0
    '''

    with _IEEE():
        return float(-(pv * _pvif(rate, nper) + fv) / ((1 + rate * timing) * _fvifa(rate, nper)))

@typeguard.typechecked
def ipmt(rate: float, per: int, nper: int, pv: float, fv: float = 0.0, timing: Timing = Timing.END) -> float:
    '''
    Returns the interest portion of payment number "per".

    Periods are numbered from one. Outside "[1, nper]" the portion is zero.

    >>> round_half_up(ipmt(0.07 / 12, 1, 12, -1000000.0))
    5833.33
    >>> ipmt(0.07 / 12, 13, 12, -1000000.0)
    0.0
    '''

    if per < 1 or per > nper:
        return 0.0

    with _IEEE():
        return float(_interest(rate, per - 1, pv, pmt(rate, nper, pv, fv, timing)))

@typeguard.typechecked
def ppmt(rate: float, per: int, nper: int, pv: float, fv: float = 0.0, timing: Timing = Timing.END) -> float:
    '''
    Returns the principal portion of payment number "per", i.e., the payment minus its interest portion.

    Periods are numbered from one. Outside "[1, nper]" the portion is zero.

    >>> round_half_up(ppmt(0.07 / 12, 1, 12, -1000000.0))
    80693.41
    '''

    if per < 1 or per > nper:
        return 0.0

    with _IEEE():
        payment = pmt(rate, nper, pv, fv, timing)

        return float(payment - _interest(rate, per - 1, pv, payment))

@typeguard.typechecked
def pv(rate: float, nper: int, pmt: float, fv: float = 0.0, timing: Timing = Timing.END) -> float:
    '''
    Returns the present value, the total amount that a series of future payments is worth now. When you borrow money,
    the loan amount is the present value to the lender.

           - pmt * (1 + rate * timing) * ((1 + rate) ** nper - 1) / rate - fv
      pv = --------------------------------------------------------------------
                                   (1 + rate) ** nper

    At a null rate this is "-(fv + pmt * nper)".

    >>> pv(0.0, 12, -100.0)
    1200.0
    '''

    with _IEEE():
        return float((-pmt * (1 + rate * timing) * _fvifa(rate, nper) - fv) / _pvif(rate, nper))

@typeguard.typechecked
def fv(rate: float, nper: int, pmt: float, pv: float, timing: Timing = Timing.END) -> float:
    '''
    Returns the future value of an investment based on constant payments and a constant interest rate.

      fv = - pmt * (1 + rate * timing) * ((1 + rate) ** nper - 1) / rate - pv * (1 + rate) ** nper

    At a null rate this is "-(pv + pmt * nper)".

    >>> fv(0.0, 12, -100.0, 0.0)
    1200.0
    '''

    with _IEEE():
        return float(-pmt * (1 + rate * timing) * _fvifa(rate, nper) - pv * _pvif(rate, nper))

@typeguard.typechecked
def nper(rate: float, pmt: float, pv: float, fv: float = 0.0, timing: Timing = Timing.END) -> float:
    '''
    Returns the number of periods of an investment based on constant payments and a constant interest rate.

                 pmt * (1 + rate * timing) - fv * rate
             log -------------------------------------
                 pmt * (1 + rate * timing) + pv * rate
      nper = -----------------------------------------
                          log(1 + rate)

    At a null rate, with a payment, this is "-fv / pmt - pv / pmt". Other non positive rates give zero, and so does a
    non positive logarithm argument.

    >>> nper(0.0, -100.0, 1200.0)
    12.0
    >>> nper(0.0, 0.0, 1200.0)
    0.0
    '''

    if rate == 0 and pmt != 0:
        return float(-fv / pmt - pv / pmt)

    if rate <= 0:
        return 0.0

    with _IEEE():
        initial = pmt * (1 + rate * timing)
        ratio = (initial - fv * rate) / np.float64(pv * rate + initial)

        if ratio <= 0:
            return 0.0

        return float(np.log(ratio) / np.log(np.float64(1 + rate)))

@typeguard.typechecked
def rate(
    nper: int,
    pmt: float,
    pv: float,
    fv: float = 0.0,
    timing: Timing = Timing.END,
    guess: float = 0.1, *,
    config: Config = DEFAULT_CONFIG
) -> float:
    '''
    Returns the interest rate per period of an annuity.

    Finds the root of the future value equation,

      pv * (1 + rate) ** nper + pmt * (1 + rate * timing) * ((1 + rate) ** nper - 1) / rate + fv = 0

    by the secant method, starting from the null rate and "guess". See [RATE SOLVER] above for the stop criteria.

    >>> round_half_up(rate(12, -100.0, 1000.0), 6)
    0.029229

    The result isn't checked. A poor guess may return an unstable estimate, or NaN.

    >>> math.isnan(rate(12, 3612.82, 41817.82, guess=0.0))
    True
    '''

    def residual(x: float) -> float:
        if abs(x) < config.accuracy:  # First order expansion around zero.
            return pv * (1 + nper * x) + pmt * (1 + x * timing) * nper + fv

        f = _growth(x, nper)

        return pv * f + pmt * (1 / x + timing) * (f - 1) + fv

    with _IEEE():
        x0 = np.float64(0)
        x1 = np.float64(guess)

        # A seed too close to zero carries no growth factor, and degenerates into NaN.
        f = _growth(x1, nper) if abs(x1) >= config.accuracy else 0.0

        y0 = pv + pmt * nper + fv
        y1 = pv * f + pmt * (1 / x1 + timing) * (f - 1) + fv

        i = 0

        while abs(y0 - y1) > config.accuracy and i < config.max_iterations:
            x0, x1 = x1, (y1 * x0 - y0 * x1) / (y1 - y0)
            y0, y1 = y1, residual(x1)

            i += 1

            _LOG.debug(f'i={i}, rate={x1}, residual={y1}')

        if not math.isfinite(x1):
            _LOG.warning(f'rate solver degenerated after {i} iterations (nper={nper}, pmt={pmt}, pv={pv}, fv={fv}, guess={guess})')

        elif not abs(y0 - y1) <= config.accuracy:
            _LOG.warning(f'rate solver stopped without converging after {i} iterations, returning {x1} (nper={nper}, pmt={pmt}, pv={pv}, fv={fv}, guess={guess})')

        return float(x1)
# }}}

# Public API. Amortization schedules. {{{
@dataclasses.dataclass(frozen=True)
class Installment:
    '''
    An entry of an amortization schedule.

      • "period" is the installment number, starting at one.

      • "payment" is the installment value, "principal" plus "interest".

      • "principal" is the value amortized by the installment.

      • "interest" is the interest paid by the installment.

      • "remaining" is the loan balance after the installment.

    Monetary fields are rounded, each on its own. So "payment" may differ from "principal + interest" by one unit of
    the last decimal place.
    '''

    period: int

    payment: float

    principal: float

    interest: float

    remaining: float

@dataclasses.dataclass(frozen=True)
class Loan:
    '''
    A loan, repaid monthly.

    Has five fields: the borrowed "amount", the number of monthly "periods", the nominal "annual_rate" (a fraction,
    0.07 for 7% a year), the repayment "method", and a "config".

    >>> loan = Loan(1000000.0, 12, 0.07)
    >>> loan.calculate_installments()[0]
    Installment(period=1, payment=86526.75, principal=80693.41, interest=5833.33, remaining=919306.59)
    >>> loan.calculate_total_interest()
    38320.95
    '''

    amount: float

    periods: int

    annual_rate: float

    method: Method = Method.EQUAL_PAYMENT

    config: Config = DEFAULT_CONFIG

    def __post_init__(self) -> None:
        typeguard.check_type(self.amount, float)
        typeguard.check_type(self.periods, int)
        typeguard.check_type(self.annual_rate, float)
        typeguard.check_type(self.method, Method)
        typeguard.check_type(self.config, Config)

        if self.periods < 1:
            raise ValueError('"periods" must be a greater than, or equal to, one')

        if not self.amount > 0:
            raise ValueError(f'"amount" must be positive, got {self.amount}')

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / _MONTHS

    @typeguard.typechecked
    def calculate_payment(self, period: t.Optional[int] = None) -> float:
        '''
        Returns the installment value of a period.

        Without a period, returns the level payment of an equal payment loan, or the first (and largest) installment
        of an equal principal loan.
        '''

        if period is None and self.method is Method.EQUAL_PAYMENT:
            return pmt(self.monthly_rate, self.periods, -self.amount)

        if period is None:
            period = 1

        return self.calculate_principal(period) + self.calculate_interest(period)

    @typeguard.typechecked
    def calculate_principal(self, period: int) -> float:
        if self.method is Method.EQUAL_PAYMENT:
            return ppmt(self.monthly_rate, period, self.periods, -self.amount)

        return self.amount / self.periods

    @typeguard.typechecked
    def calculate_interest(self, period: int) -> float:
        if self.method is Method.EQUAL_PAYMENT:
            return ipmt(self.monthly_rate, period, self.periods, -self.amount)

        # Interest over the balance before the period, which is the amount times the share of periods still unpaid.
        return self.amount * (self.periods - period + 1) / self.periods * self.monthly_rate

    def calculate_total_payment(self) -> float:
        if self.method is Method.EQUAL_PAYMENT:
            total = pmt(self.monthly_rate, self.periods, -self.amount) * self.periods

        else:
            total = self.amount * (1 + self.monthly_rate * (1 + self.periods) / 2)  # Arithmetic series of the interest.

        return round_half_up(total, self.config.precision)

    def calculate_total_interest(self) -> float:
        return round_half_up(self.calculate_total_payment() - self.amount, self.config.precision)

    def iter_installments(self) -> t.Generator[Installment, None, None]:
        '''Lazily generates the schedule, one installment per period, from the first period up to the last.'''

        _R = functools.partial(round_half_up, precision=self.config.precision)

        repaid = 0.0

        for period in range(1, self.periods + 1):
            principal = self.calculate_principal(period)
            interest = self.calculate_interest(period)

            repaid += principal

            row = Installment(
                period=period,
                payment=_R(principal + interest),
                principal=_R(principal),
                interest=_R(interest),
                remaining=_R(self.amount - repaid)
            )

            _LOG.debug(row)

            yield row

    def calculate_installments(self) -> t.List[Installment]:
        return list(self.iter_installments())
# }}}

# Log current version info.
_LOG.info(f'Loancore version {__version__} initialized')

if __name__ == '__main__':
    import doctest

    doctest.testmod()

# vi:fdm=marker:
