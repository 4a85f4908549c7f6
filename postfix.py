import math
import logging
from functools import lru_cache

logger = logging.getLogger(__name__)


class ExpressionInvalid(ValueError):
    """The expression text could not be compiled."""


def _ieee(func):
    # math raises where C returns nan/inf; plotting wants the C behaviour
    def wrapped(*args):
        try:
            return func(*args)
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf
    wrapped.__name__ = func.__name__
    return wrapped


def _div(a, b):
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _mod(a, b):
    try:
        return math.fmod(a, b)
    except ValueError:
        return math.nan


def _pow(a, b):
    if a == 0 and b < 0:
        return math.inf
    try:
        return math.pow(a, b)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf if a > 0 or float(b).is_integer() and b % 2 == 0 else -math.inf


def _odd(func):
    # overflow keeps the sign of the argument, e.g. sinh(-1000) is -inf
    def wrapped(a):
        try:
            return func(a)
        except OverflowError:
            return math.copysign(math.inf, a)
    return wrapped


def _logarithm(func):
    def wrapped(a):
        if a == 0:
            return -math.inf
        return _ieee(func)(a)
    return wrapped


def _rounding(func):
    def wrapped(a):
        if not math.isfinite(a):
            return a
        return float(func(a))
    return wrapped


class operators:
    add = staticmethod(lambda a, b: a + b)
    sub = staticmethod(lambda a, b: a - b)
    mul = staticmethod(lambda a, b: a * b)
    truediv = staticmethod(_div)
    mod = staticmethod(_mod)
    pow = staticmethod(_pow)
    neg = staticmethod(lambda a: -a)


functions = {
    "abs": (abs, 1),
    "acos": (_ieee(math.acos), 1),
    "asin": (_ieee(math.asin), 1),
    "atan": (math.atan, 1),
    "atan2": (math.atan2, 2),
    "ceil": (_rounding(math.ceil), 1),
    "cos": (_ieee(math.cos), 1),
    "cosh": (_ieee(math.cosh), 1),
    "exp": (_ieee(math.exp), 1),
    "floor": (_rounding(math.floor), 1),
    "ln": (_logarithm(math.log), 1),
    "log": (_logarithm(math.log10), 1),
    "log10": (_logarithm(math.log10), 1),
    "pow": (_pow, 2),
    "sin": (_ieee(math.sin), 1),
    "sinh": (_odd(math.sinh), 1),
    "sqrt": (_ieee(math.sqrt), 1),
    "tan": (_ieee(math.tan), 1),
    "tanh": (math.tanh, 1),
}

constants = {
    "pi": math.pi,
    "e": math.e,
}


class operator:
    opMap = {
            "+": "add",
            "-": "sub",
            "*": "mul",
            "/": "truediv",
            "%": "mod",
            "^": "pow",
            "(": "(",
            ")": ")",
            ",": ",",
            "neg": "neg"
            }
    opBinary = "add", "sub", "mul", "truediv", "mod", "pow"

    @classmethod
    def normalizeOp(cls, name):
        if name not in set(cls.opMap.keys()) | set(cls.opMap.values()):
            raise ExpressionInvalid(f"invalid operation `{name}`")
        return cls.opMap.get(name, name)

    def __init__(self, name, opBank=operators):
        self.name = self.normalizeOp(name)
        self.binary = self.name in self.opBinary
        self.arity = 2 if self.binary else 1
        self.call = getattr(opBank, self.name, None)

    def __repr__(self):
        return f"{self.name}"
    __str__ = __repr__


class function:
    def __init__(self, name):
        self.name = name
        self.call, self.arity = functions[name]
        self.args = 1

    def __repr__(self):
        return f"{self.name}()"
    __str__ = __repr__


class variable:
    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return f"{self.name}"
    __str__ = __repr__


def expandImplicitMultiplication(raw):
    """Insert `*` where multiplication is written by juxtaposition.

    A `*` goes between two neighbouring characters when the left one is a
    digit, `)` or `x` and the right one is `(`, `x` or any letter, so
    ``"2x"`` becomes ``"2*x"`` and ``"(x+1)(x-1)"`` becomes
    ``"(x+1)*(x-1)"``. Text that already has the operator is unchanged.
    """
    out = []
    for index, char in enumerate(raw):
        out.append(char)
        if index + 1 == len(raw):
            break
        following = raw[index + 1]
        left = char.isdigit() or char in ")x"
        right = following in "(x" or following.isalpha()
        if left and right:
            out.append("*")
    return "".join(out)


def strToInfix(string, varName="x"):
    """Split expression text into numbers, names and operators."""
    string = string.replace(" ", "")
    if not string:
        raise ExpressionInvalid("empty expression")
    stack = []
    count = 0
    while count < len(string):
        char = string[count]
        if char.isdigit() or char == ".":
            end = count
            while end < len(string) and (string[end].isdigit() or string[end] == "."):
                end += 1
            try:
                stack.append(float(string[count:end]))
            except ValueError:
                raise ExpressionInvalid(f"malformed number `{string[count:end]}`") from None
            count = end
            continue
        if char.isalpha() or char == "_":
            end = count
            while end < len(string) and (string[end].isalnum() or string[end] == "_"):
                end += 1
            name = string[count:end]
            count = end
            nextChar = string[count] if count < len(string) else None
            if name in functions and nextChar == "(":
                stack.append(function(name))
            elif name in constants:
                stack.append(constants[name])
            elif name == varName:
                stack.append(variable(name))
            else:
                raise ExpressionInvalid(f"unknown symbol `{name}`")
            continue
        stack.append(operator(char))
        count += 1
    return stack


def isPrior(item, compare):
    priorityList = ("neg",), ("pow",), ("mul", "truediv", "mod"), ("add", "sub")
    for values in priorityList:
        if item in values:
            return compare not in values
        if compare in values:
            return False
    return False


def addOperator(stack, operatorStack, op):
    while operatorStack:
        top = operatorStack[-1]
        if isinstance(top, function) or top.name == "(":
            break
        # unary operators stack up instead of popping each other
        if op.name == "neg" or isPrior(op.name, top.name):
            break
        stack.append(operatorStack.pop())
    operatorStack.append(op)


def closeParen(stack, operatorStack, comma=False):
    while operatorStack:
        top = operatorStack[-1]
        if isinstance(top, function) or top.name == "(":
            break
        stack.append(operatorStack.pop())
    if not operatorStack:
        raise ExpressionInvalid("mismatched parentheses")
    if comma:
        if not isinstance(operatorStack[-1], function):
            raise ExpressionInvalid("`,` outside of a function call")
        operatorStack[-1].args += 1
        return
    opener = operatorStack.pop()
    if isinstance(opener, function):
        if opener.args != opener.arity:
            raise ExpressionInvalid(f"{opener.name} takes {opener.arity} argument(s), got {opener.args}")
        stack.append(opener)


def infixToPostfix(infix):
    stack = []
    operatorStack = []
    expectOperand = True
    for index, item in enumerate(infix):
        if isinstance(item, (float, int, variable)):
            if not expectOperand:
                raise ExpressionInvalid(f"missing operator before `{item}`")
            stack.append(item)
            expectOperand = False
            continue
        if isinstance(item, function):
            if not expectOperand:
                raise ExpressionInvalid(f"missing operator before `{item.name}`")
            operatorStack.append(item)
            # the tokenizer only emits functions directly followed by `(`
            continue
        if item.name == "(":
            if index and isinstance(infix[index - 1], function):
                continue
            if not expectOperand:
                raise ExpressionInvalid("missing operator before `(`")
            operatorStack.append(item)
            continue
        if item.name in (")", ","):
            if expectOperand:
                raise ExpressionInvalid(f"missing operand before `{item.name}`")
            closeParen(stack, operatorStack, comma=item.name == ",")
            expectOperand = item.name == ","
            continue
        if expectOperand:
            if item.name == "sub":
                addOperator(stack, operatorStack, operator("neg"))
                continue
            if item.name == "add":
                continue
            raise ExpressionInvalid(f"missing operand before `{item.name}`")
        addOperator(stack, operatorStack, item)
        expectOperand = True
    if expectOperand:
        raise ExpressionInvalid("expression ends with an operator")
    while operatorStack:
        op = operatorStack.pop()
        if isinstance(op, function) or op.name == "(":
            raise ExpressionInvalid("mismatched parentheses")
        stack.append(op)
    return stack


def calculatePostfix(postfixList, value=math.nan):
    stack = []
    for item in postfixList:
        if isinstance(item, variable):
            stack.append(value)
        elif isinstance(item, float):
            stack.append(item)
        else:
            args = stack[-item.arity:]
            del stack[-item.arity:]
            stack.append(float(item.call(*args)))
    return stack[0]


def checkPostfix(postfixList):
    depth = 0
    for item in postfixList:
        if isinstance(item, (float, variable)):
            depth += 1
            continue
        if depth < item.arity:
            raise ExpressionInvalid(f"not enough operands for `{item}`")
        depth -= item.arity - 1
    if depth != 1:
        raise ExpressionInvalid("unresolved expression")


class Evaluable:
    """A compiled expression of one bound variable."""

    def __init__(self, text, postfixList, varName="x"):
        self.text = text
        self.varName = varName
        self.postfix = postfixList

    def evaluateAt(self, x):
        return calculatePostfix(self.postfix, float(x))

    __call__ = evaluateAt

    def __repr__(self):
        return f"Evaluable({self.text!r})"


def getFunc(text, varName="x"):
    infix = strToInfix(text, varName)
    postfix = infixToPostfix(infix)
    checkPostfix(postfix)
    return Evaluable(text, postfix, varName)


def compileExpression(raw, varName="x"):
    expanded = expandImplicitMultiplication(raw)
    logger.debug("compiling %r as %r", raw, expanded)
    return getFunc(expanded, varName)


@lru_cache(maxsize=32)
def compileCached(raw, varName="x"):
    return compileExpression(raw, varName)
