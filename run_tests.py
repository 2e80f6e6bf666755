#!/usr/bin/env python
"""
Run the Blinkspace test suite through pytest-django.

    python run_tests.py                      # everything
    python run_tests.py friends -k race      # one app, filtered by name
    python run_tests.py --coverage --html    # with a coverage report

Settings come from [tool.pytest.ini_options] in pyproject.toml
(blinkspace.test_settings).
"""

import argparse
import subprocess
import sys

APPS = ('users', 'friends', 'blinks')


def build_parser():
    parser = argparse.ArgumentParser(description='Run the Blinkspace tests with pytest')
    parser.add_argument('apps', nargs='*', metavar='app',
                        help=f"Apps to test, any of: {', '.join(APPS)} (default: all)")
    parser.add_argument('-k', dest='keyword', help='Only run tests whose names match this expression')
    parser.add_argument('-x', '--exitfirst', action='store_true', help='Stop at the first failure')
    parser.add_argument('--reuse-db', action='store_true', help='Keep the test database between runs')
    parser.add_argument('--coverage', action='store_true', help='Measure coverage of the apps')
    parser.add_argument('--html', action='store_true', help='Also write an HTML coverage report to htmlcov/')
    return parser


def pytest_command(args):
    targets = [f'{app}/tests.py' for app in args.apps] or [f'{app}/tests.py' for app in APPS]
    cmd = ['-m', 'pytest', *targets]

    if args.keyword:
        cmd += ['-k', args.keyword]
    if args.exitfirst:
        cmd.append('-x')
    if args.reuse_db:
        cmd.append('--reuse-db')

    if args.coverage:
        sources = ','.join(('blinkspace',) + APPS)
        return [sys.executable, '-m', 'coverage', 'run', f'--source={sources}',
                '--omit=*/migrations/*,*/tests.py', *cmd]
    return [sys.executable, *cmd]


def main():
    parser = build_parser()
    args = parser.parse_args()
    unknown = sorted(set(args.apps) - set(APPS))
    if unknown:
        parser.error(f"unknown app: {', '.join(unknown)}")
    if args.html and not args.coverage:
        args.coverage = True

    cmd = pytest_command(args)
    print(' '.join(cmd))
    returncode = subprocess.run(cmd).returncode

    if args.coverage:
        subprocess.run([sys.executable, '-m', 'coverage', 'report'])
        if args.html:
            subprocess.run([sys.executable, '-m', 'coverage', 'html'])
            print('HTML coverage report written to htmlcov/index.html')

    return returncode


if __name__ == '__main__':
    sys.exit(main())
