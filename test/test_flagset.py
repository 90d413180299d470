"""
FlagSet behavioral tests (registration, token resolution, policies).

Scope
- Validate registration: name normalization, aliasing, duplicate detection.
- Validate the resolver: clusters, attached values, arity rules, interspersion,
  terminators, help handling and every fault kind.
- Validate error policies and what gets written to the output sink.

Conventions
- Test method names follow CamelCase per project convention.
- Every FlagSet writes into an io.StringIO so output can be asserted.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase

from gnuparams import (
    FlagSet,
    Policy,
    Value,
    StringValue,
    HELP,
    HelpRequested,
    MalformedTokenError,
    UnknownFlagError,
    UnwantedValueError,
    MissingValueError,
    NotEnoughValuesError,
    InvalidValueError,
    OutOfRangeError,
    DuplicateFlagError,
)


def flagset(name="test", policy=Policy.PROPAGATE, **options):
    buffer = io.StringIO()
    return FlagSet(name, policy, output=buffer, **options), buffer


class CountingBool(Value):
    """Boolean-capable value counting how often each literal was seen."""
    boolean = True

    def __init__(self):
        self.true = 0
        self.false = 0

    def set(self, tokens):
        match tokens[0].lower() if tokens else "true":
            case "1" | "t" | "true":
                self.true += 1
            case "0" | "f" | "false":
                self.false += 1

    def get(self):
        return self.true, self.false

    def __str__(self):
        return str(self.true)


class TestRegistration(TestCase):
    def testAliasesShareOneRecord(self):
        flags, _ = flagset()
        value = flags.string("i install", "none", "what to install")
        self.assertIs(flags.lookup("i"), flags.lookup("install"))
        flags.set("i", "pkg")
        self.assertEqual(value.get(), "pkg")
        self.assertEqual(flags["install"], "pkg")

    def testLongNameBecomesCanonical(self):
        flags, _ = flagset()
        flags.present("i install")
        self.assertEqual(flags.lookup("i").names, ("install", "i"))
        self.assertEqual(flags.lookup("i").name, "install")
        flags.present(["v", "verbose", "loud"])
        self.assertEqual(flags.lookup("v").names, ("verbose", "v", "loud"))

    def testDefaultCapturedAtRegistration(self):
        flags, _ = flagset()
        flags.integer("n", 27)
        flags.parse(["-n", "3"])
        record = flags.lookup("n")
        self.assertEqual(record.default, "27")
        self.assertEqual(str(record.value), "3")

    def testRecordMetadata(self):
        flags, _ = flagset()
        flags.grouping("Network")
        flags.string("listen", ":7443", "bind address", metavar="ADDR")
        record = flags.lookup("listen")
        self.assertEqual(record.usage, "bind address")
        self.assertEqual(record.metavar, "ADDR")
        self.assertEqual(record.group, "Network")
        self.assertEqual(record.nargs, 1)
        self.assertIsNone(flags.lookup("missing"))

    def testDuplicateNameIsFatal(self):
        flags, buffer = flagset()
        flags.present("a")
        with self.assertRaises(DuplicateFlagError):
            flags.present("b a")
        self.assertEqual(buffer.getvalue(), "test parameter redefined: a\n")
        self.assertNotIn("b", flags)

    def testDuplicateIgnoresPolicy(self):
        flags, _ = flagset(policy=Policy.TERMINATE)
        flags.present("a")
        with self.assertRaises(DuplicateFlagError):
            flags.boolean("a")

    def testMalformedNames(self):
        flags, _ = flagset()
        for names in ("", "-x", "a=b", ["a b"], ["x", "x"]):
            with self.assertRaises(ValueError, msg=repr(names)):
                flags.present(names)
        with self.assertRaises(TypeError):
            flags.present(42)
        with self.assertRaises(TypeError):
            flags.add("not a value", "x")

    def testVisitAllIsSortedAndDeduplicated(self):
        flags, _ = flagset()
        flags.present("zeta")
        flags.present("b beta")
        flags.present("alpha")
        self.assertEqual([record.name for record in flags.visit_all()], ["alpha", "beta", "zeta"])

    def testVisitOnlySet(self):
        flags, _ = flagset()
        flags.present("x")
        flags.present("y")
        self.assertEqual(list(flags.visit()), [])
        self.assertEqual(flags.nflag, 0)
        flags.set("x", [])
        self.assertEqual([record.name for record in flags.visit()], ["x"])
        self.assertEqual(flags.nflag, 1)

    def testProgrammaticSetFaults(self):
        flags, _ = flagset()
        flags.integer("n")
        with self.assertRaises(UnknownFlagError) as context:
            flags.set("m", "1")
        self.assertEqual(str(context.exception), "no such parameter -m")
        with self.assertRaises(InvalidValueError):
            flags.set("n", "x")

    def testArgOutOfRange(self):
        flags, _ = flagset()
        flags.parse(["one"])
        self.assertEqual(flags.arg(0), "one")
        self.assertEqual(flags.arg(1), "")
        self.assertEqual(flags.arg(-1), "")
        self.assertEqual(flags.narg, 1)

    def testOutputAcceptsConsoleOrStream(self):
        flags = FlagSet()
        self.assertTrue(flags.output.stderr)
        with self.assertRaises(TypeError):
            flags.output = 42


class TestParsing(TestCase):
    def testEndToEnd(self):
        flags, _ = flagset()
        tls = flags.boolean("tls", True)
        debug = flags.present("debug")
        listen = flags.string("listen", ":7443")
        fault = flags.parse(["--debug", "--tls", "false", "--listen", "0.0.0.0:8080", "extra"])
        self.assertIsNone(fault)
        self.assertTrue(debug.get())
        self.assertFalse(tls.get())
        self.assertEqual(listen.get(), "0.0.0.0:8080")
        self.assertEqual(flags.args, ["extra"])
        self.assertTrue(flags.parsed)

    def testClusterEquivalence(self):
        triggered = []
        for arguments in (["-abc"], ["-a", "-b", "-c"]):
            flags, _ = flagset()
            for name in "abc":
                flags.present(name)
            self.assertIsNone(flags.parse(arguments))
            triggered.append([record.name for record in flags.visit()])
        self.assertEqual(triggered[0], triggered[1])
        self.assertEqual(triggered[0], ["a", "b", "c"])

    def testAttachedValuePrecedence(self):
        for arguments in (["-p8080"], ["-p", "8080"], ["--port=8080"], ["--port", "8080"], ["-p=8080"]):
            flags, _ = flagset()
            port = flags.integer("p port")
            self.assertIsNone(flags.parse(arguments), arguments)
            self.assertEqual(port.get(), 8080, arguments)

    def testClusterEndingInValueFlag(self):
        flags, _ = flagset()
        verbose = flags.present("v")
        port = flags.integer("p")
        self.assertIsNone(flags.parse(["-vp8080", "rest"]))
        self.assertTrue(verbose.get())
        self.assertEqual(port.get(), 8080)
        self.assertEqual(flags.args, ["rest"])

    def testUnicodeShortFlag(self):
        flags, _ = flagset()
        world = flags.present("世")
        self.assertIsNone(flags.parse(["-世"]))
        self.assertTrue(world.get())

    def testEmptyAttachedValue(self):
        flags, _ = flagset()
        name = flags.string("name", "x")
        self.assertIsNone(flags.parse(["--name=", "next"]))
        self.assertEqual(name.get(), "")
        self.assertEqual(flags.args, ["next"])

    def testTerminator(self):
        flags, _ = flagset()
        verbose = flags.present("v")
        self.assertIsNone(flags.parse(["--", "-v", "x"]))
        self.assertFalse(verbose.get())
        self.assertEqual(flags.args, ["-v", "x"])

    def testStopsAtFirstPositional(self):
        flags, _ = flagset()
        verbose = flags.present("v")
        self.assertIsNone(flags.parse(["a", "-v"]))
        self.assertFalse(verbose.get())
        self.assertEqual(flags.args, ["a", "-v"])

    def testSingleDashAndEmptyArePositional(self):
        flags, _ = flagset()
        flags.present("v")
        self.assertIsNone(flags.parse(["-", "-v"]))
        self.assertEqual(flags.args, ["-", "-v"])
        self.assertIsNone(flags.parse(["", "-v"]))
        self.assertEqual(flags.args, ["", "-v"])

    def testIntersperse(self):
        flags, _ = flagset(intersperse=True)
        verbose = flags.present("v")
        self.assertIsNone(flags.parse(["a", "-v", "-", "b", "--", "-v"]))
        self.assertTrue(verbose.get())
        self.assertEqual(flags.args, ["a", "-", "b", "-v"])

    def testReparseResetsArgsButNotValues(self):
        flags, _ = flagset()
        verbose = flags.present("v")
        name = flags.string("name")
        flags.parse(["-v", "--name", "x", "one"])
        flags.parse(["two"])
        self.assertEqual(flags.args, ["two"])
        self.assertEqual(list(flags.visit()), [])
        self.assertTrue(verbose.get())
        self.assertEqual(name.get(), "x")

    def testFixedArity(self):
        received = []
        flags, _ = flagset()
        flags.func("pair", received.append, nargs=2)
        self.assertIsNone(flags.parse(["--pair", "a", "-b", "rest"]))
        self.assertEqual(received, [["a", "-b"]])
        self.assertEqual(flags.args, ["rest"])

    def testFixedArityRejectsAttachedValue(self):
        flags, _ = flagset()
        flags.func("pair", print, nargs=2)
        fault = flags.parse(["--pair=a", "b"])
        self.assertIsInstance(fault, NotEnoughValuesError)
        self.assertEqual(str(fault), "parameter needs more than one parameter: --pair")

    def testFixedArityNotEnough(self):
        flags, _ = flagset()
        flags.func("pair", print, nargs=2)
        fault = flags.parse(["--pair", "a"])
        self.assertIsInstance(fault, NotEnoughValuesError)
        self.assertEqual(str(fault), "parameter not enough parameters provided: --pair")

    def testFuncCallbackFailure(self):
        def parse_ip(tokens):
            if tokens[0].split(".")[0] == "256":
                raise ValueError("could not parse IP")

        flags, _ = flagset()
        flags.func("ip", parse_ip, "IP address", metavar="ADDR")
        self.assertIsNone(flags.parse(["--ip", "127.0.0.1"]))
        fault = flags.parse(["--ip", "256.0.0.1"])
        self.assertIsInstance(fault, InvalidValueError)
        self.assertEqual(str(fault), 'invalid value "256.0.0.1" for parameter --ip: could not parse IP')
        self.assertIsInstance(fault.__cause__, ValueError)

    def testSlice(self):
        flags, _ = flagset()
        install = flags.slice("i install", usage="packages to install", metavar="PACKAGES")
        remove = flags.slice("r remove", usage="packages to remove", metavar="PACKAGES")
        self.assertIsNone(flags.parse(["--install", "a", "b", "-r", "c"]))
        self.assertEqual(install.get(), ["a", "b"])
        self.assertEqual(remove.get(), ["c"])

    def testSliceStopsAtTerminatorAndTakesAttached(self):
        flags, _ = flagset()
        install = flags.slice("i install")
        self.assertIsNone(flags.parse(["-ia", "b", "--", "c"]))
        self.assertEqual(install.get(), ["a", "b"])
        self.assertEqual(flags.args, ["c"])
        self.assertIsNone(flags.parse(["--install=d", "-", "e"]))
        self.assertEqual(install.get(), ["d", "-", "e"])

    def testSliceReparseReplacesPreviousList(self):
        flags, _ = flagset()
        install = flags.slice("install", ["x"])
        self.assertIsNone(flags.parse(["--install", "a", "--install", "b"]))
        self.assertEqual(install.get(), ["a", "b"])
        self.assertIsNone(flags.parse(["--install", "c"]))
        self.assertEqual(install.get(), ["c"])
        self.assertIsNone(flags.parse(["rest"]))
        self.assertEqual(install.get(), ["c"])

    def testSliceNeedsOneValue(self):
        flags, _ = flagset()
        flags.slice("install")
        flags.present("v")
        fault = flags.parse(["--install", "-v"])
        self.assertIsInstance(fault, MissingValueError)


class TestCapabilities(TestCase):
    def testUserDefinedBoolean(self):
        flags, _ = flagset()
        counter = flags.add(CountingBool(), "b", "usage")
        flags.parse(["-b", "true", "-btrue", "-b=true", "-b=false", "-b", "barg", "-bt", "-b0"])
        self.assertEqual(counter.get(), (4, 2))

    def testBooleanCapableZeroArityConsumesLiteral(self):
        class Switch(CountingBool):
            nargs = 0

        flags, _ = flagset()
        switch = flags.add(Switch(), "b")
        verbose = flags.present("v")
        self.assertIsNone(flags.parse(["-b0"]))
        self.assertEqual(switch.get(), (0, 1))
        self.assertIsNone(flags.parse(["-bv"]))
        self.assertEqual(switch.get(), (1, 1))
        self.assertTrue(verbose.get())

    def testPresentCapableSingleArity(self):
        class Color(StringValue):
            present = True

            def set(self, tokens):
                super().set(tokens or ["auto"])

        flags, _ = flagset()
        color = flags.add(Color("never"), "c color")
        self.assertIsNone(flags.parse(["--color", "file"]))
        self.assertEqual(color.get(), "auto")
        self.assertEqual(flags.args, ["file"])
        self.assertIsNone(flags.parse(["--color=always"]))
        self.assertEqual(color.get(), "always")
        self.assertIsNone(flags.parse(["-cnever"]))
        self.assertEqual(color.get(), "never")


class TestFaults(TestCase):
    def testUnknownShortFlag(self):
        flags, buffer = flagset(label="option")
        fault = flags.parse(["-z"])
        self.assertIsInstance(fault, UnknownFlagError)
        self.assertEqual(str(fault), "option provided but not defined: -z")
        self.assertEqual(fault.options["flag"], "z")
        self.assertEqual(buffer.getvalue(), "option provided but not defined: -z\nUsage of test:\n")

    def testUnknownLongFlag(self):
        flags, _ = flagset()
        fault = flags.parse(["--zz"])
        self.assertEqual(str(fault), "parameter provided but not defined: --zz")

    def testUnwantedValue(self):
        flags, _ = flagset()
        flags.present("debug")
        fault = flags.parse(["--debug=1"])
        self.assertIsInstance(fault, UnwantedValueError)
        self.assertEqual(str(fault), 'parameter unwanted argument "1" found after: --debug')

    def testUnwantedValueOnShortFlag(self):
        flags, _ = flagset()
        flags.present("d")
        self.assertIsInstance(flags.parse(["-d=x"]), UnwantedValueError)

    def testMissingValue(self):
        flags, _ = flagset()
        flags.integer("port")
        fault = flags.parse(["--port"])
        self.assertIsInstance(fault, MissingValueError)
        self.assertEqual(str(fault), "parameter needs a parameter: --port")

    def testConversionFailure(self):
        flags, _ = flagset()
        port = flags.integer("port", 80)
        fault = flags.parse(["--port=x"])
        self.assertIsInstance(fault, InvalidValueError)
        self.assertNotIsInstance(fault, OutOfRangeError)
        self.assertEqual(str(fault), 'invalid value "x" for parameter --port: parsing "x": invalid syntax')
        self.assertEqual(fault.options["input"], ("x",))
        self.assertEqual(port.get(), 80)

    def testRangeFailureIsDistinct(self):
        flags, _ = flagset()
        flags.int32("i")
        fault = flags.parse(["-i", "2147483648"])
        self.assertIsInstance(fault, OutOfRangeError)
        self.assertIn("value out of range", str(fault))

    def testEveryNumericKindRejectsGarbage(self):
        for kind in ("boolean", "integer", "int64", "uint", "uint64", "float64", "duration"):
            flags, _ = flagset()
            getattr(flags, kind)(kind)
            fault = flags.parse([f"--{kind}=x"])
            self.assertIsInstance(fault, InvalidValueError, kind)
            self.assertIn("for parameter", str(fault))

    def testMalformedLongToken(self):
        flags, _ = flagset()
        fault = flags.parse(["--=x"])
        self.assertIsInstance(fault, MalformedTokenError)
        self.assertEqual(str(fault), 'empty parameter in argument "--=x"')

    def testFaultStopsParsing(self):
        flags, _ = flagset()
        verbose = flags.present("v")
        flags.parse(["-z", "-v", "pos"])
        self.assertFalse(verbose.get())
        self.assertEqual(flags.args, [])

    def testParseRejectsBareString(self):
        flags, _ = flagset()
        with self.assertRaises(TypeError):
            flags.parse("-v")
        with self.assertRaises(TypeError):
            flags.parse([1])


class TestHelp(TestCase):
    def testImplicitHelp(self):
        for token in ("--help", "-h"):
            flags, buffer = flagset()
            flags.present("flag", "regular flag")
            self.assertIs(flags.parse([token]), HELP)
            self.assertTrue(buffer.getvalue().startswith("Usage of test:\n"))
            self.assertNotIn("help requested", buffer.getvalue())

    def testCustomUsageIsCalled(self):
        calls = []
        flags, buffer = flagset(usage=lambda: calls.append(True))
        flag = flags.present("flag", "regular flag")
        self.assertIsNone(flags.parse(["--flag"]))
        self.assertTrue(flag.get())
        self.assertEqual(calls, [])
        self.assertIs(flags.parse(["--help"]), HELP)
        self.assertEqual(calls, [True])
        self.assertEqual(buffer.getvalue(), "")

    def testExplicitHelpOverrides(self):
        flags, buffer = flagset()
        help = flags.present("help", "help flag")
        self.assertIsNone(flags.parse(["--help"]))
        self.assertTrue(help.get())
        self.assertEqual(buffer.getvalue(), "")
        self.assertIsInstance(flags.parse(["-h"]), HelpRequested)


class TestPolicies(TestCase):
    def testTerminateExitsWithTwo(self):
        flags, _ = flagset(policy=Policy.TERMINATE)
        with self.assertRaises(SystemExit) as context:
            flags.parse(["-z"])
        self.assertEqual(context.exception.code, 2)

    def testTerminateExitsWithZeroForHelp(self):
        flags, _ = flagset(policy=Policy.TERMINATE)
        with self.assertRaises(SystemExit) as context:
            flags.parse(["--help"])
        self.assertEqual(context.exception.code, 0)

    def testTerminateSuccessReturns(self):
        flags, _ = flagset(policy=Policy.TERMINATE)
        flags.present("v")
        self.assertIsNone(flags.parse(["-v"]))

    def testAbortRaises(self):
        flags, buffer = flagset(policy=Policy.ABORT)
        with self.assertRaises(UnknownFlagError):
            flags.parse(["-z"])
        self.assertIn("Usage of test:", buffer.getvalue())

    def testAbortRaisesHelpSentinel(self):
        flags, buffer = flagset(policy=Policy.ABORT)
        with self.assertRaises(HelpRequested) as context:
            flags.parse(["-h"])
        self.assertIs(context.exception, HELP)
        self.assertEqual(buffer.getvalue(), "Usage of test:\n")


if __name__ == "__main__":
    unittest.main()
