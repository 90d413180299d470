from rich.pretty import pprint

from gnuparams import FlagSet, Policy


flags = FlagSet("demo", Policy.TERMINATE, label="option", intersperse=True)
debug = flags.present("d debug", "print parser decisions")
tls = flags.boolean("tls", True, "serve over TLS")
listen = flags.string("l listen", ":7443", "address to bind", metavar="ADDR")
timeout = flags.duration("timeout", "30s", "idle connection timeout")
flags.grouping("Packaging")
install = flags.slice("i install", usage="packages to install", metavar="PKG")


if __name__ == '__main__':
    flags.parse(["--debug", "--tls", "false", "-l0.0.0.0:8080", "extra", "-i", "a", "b"])
    pprint({flag.name: flag.value.get() for flag in flags.visit_all()})
    pprint(flags.args)
    flags.print_defaults()
