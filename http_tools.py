import argparse
import asyncio
import logging
import sys
import time

from colorama import Fore, Style, init

from protocols.HTTP import HTTPRequest
from protocols.TCP import TCPSession, ResponseResult
from utils.utils import Utils

init(autoreset=True)

__version__ = "1.0"


class HTTPTools:
    def __init__(self, connect_timeout=None, buffer_size=None):
        self.connect_timeout = connect_timeout
        self.buffer_size = buffer_size

    def send_request(self, request: HTTPRequest) -> ResponseResult:
        session = TCPSession(request, connect_timeout=self.connect_timeout, buffer_size=self.buffer_size)
        return asyncio.run(session.send())


class CLI:
    def __init__(self, http_tools: HTTPTools = None):
        self.http_tools = http_tools or HTTPTools()

    @staticmethod
    def ask(query: str) -> str:
        return input(query)

    @staticmethod
    def _answered_yes(answer: str) -> bool:
        return answer.lower() == "y"

    def prompt_request(self) -> HTTPRequest:
        hostname = self.ask("Enter hostname: ")
        port = Utils.parse_port(self.ask("Enter port (default 80): "), default=HTTPRequest.default_port)
        path = self.ask("Enter path: ")
        method = self.ask("Enter method (GET, POST, etc.): ")

        headers = {}
        while self._answered_yes(self.ask("Do you want to add a header? (y/n): ")):
            header_name = self.ask("Enter header name: ")
            header_value = self.ask("Enter header value: ")
            headers[header_name] = header_value

        data = self.ask("Enter data (for POST/PUT requests): ")

        # an empty answer means no body at all
        return HTTPRequest(hostname=hostname, method=method, path=path, port=port,
                           headers=headers, body=data if data else None)

    def execute_request(self, request: HTTPRequest) -> bool:
        print(f"{Fore.YELLOW}Sending HTTP {request.method} request to {request.hostname}:{request.port}...")
        result = self.http_tools.send_request(request)

        if result.request is not None:
            print(f"Request:\n{result.request.decode('utf-8', errors='replace')}")

        if not result.ok:
            print(f"{Fore.RED}Error: {result.error}")
            return False

        print(f"{Fore.GREEN}Response:\n{result.response}")
        print(f"Completed in {result.elapsed * 1000:.3f} ms")
        return True

    def interactive(self):
        while True:
            try:
                request = self.prompt_request()
                self.execute_request(request)

            except ValueError as e:
                print(f"{Fore.RED}Error: {e}")

            except (EOFError, KeyboardInterrupt):
                print("")
                break

            try:
                again = self.ask("Do you want to make another request? (y/n): ")
            except (EOFError, KeyboardInterrupt):
                print("")
                break

            if not self._answered_yes(again):
                break

    @staticmethod
    def build_parser():
        parser = argparse.ArgumentParser(
            description='HTTPTools Command Line Interface',
            formatter_class=argparse.RawTextHelpFormatter)
        parser.add_argument('-i', '--interactive', action='store_true', help='Enter interactive mode (default)')
        parser.add_argument('-v', '--verbose', action='store_true', help='Log connection details')
        parser.add_argument('--connect-timeout', type=float, default=None,
                            help='Give up connecting after this many seconds (default: wait)')
        parser.add_argument('--buffer-size', type=int, default=TCPSession.incoming_buffer_size,
                            help=f'Bytes per read (default: {TCPSession.incoming_buffer_size})')
        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # request command
        parser_request = subparsers.add_parser('request', aliases=['req'], help='Send a single raw HTTP request')
        parser_request.add_argument('host', help='Host to send request to')
        parser_request.add_argument('--port', type=int, default=HTTPRequest.default_port, help='Port number (default: 80)')
        parser_request.add_argument('--path', default='/', help='Path and query (default: /)')
        parser_request.add_argument('-X', '--method', default='GET', help='Request method (default: GET)')
        parser_request.add_argument('-H', '--header', action='append', default=[], metavar='NAME:VALUE',
                                    help='Extra header, can be repeated')
        parser_request.add_argument('-d', '--data', default=None, help='Request body')

        return parser

    def execute_command(self, args) -> bool:
        try:
            headers = dict(Utils.parse_header(header) for header in args.header)
            request = HTTPRequest(hostname=args.host, method=args.method, path=args.path,
                                  port=args.port, headers=headers, body=args.data)

        except ValueError as e:
            print(f"{Fore.RED}Error: {e}")
            return False

        return self.execute_request(request)

    def run(self, argv=None) -> int:
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if args.verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

        self.http_tools = HTTPTools(args.connect_timeout, args.buffer_size)

        start_time = time.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{Fore.GREEN}HTTPTools CLI Version {__version__}")
        print(f"Started at {start_time}\n")

        if args.interactive or not args.command:
            self.interactive()
            success = True
        else:
            success = self.execute_command(args)

        end_time = time.strftime("%Y-%m-%d %H:%M:%S")
        print(f"\n{Fore.GREEN}Operation completed at {end_time}{Style.RESET_ALL}")
        return 0 if success else 1


def main():
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()
