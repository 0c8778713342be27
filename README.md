# duckchat

A small chat system over UDP. Clients log in to a server and talk on named
channels. Servers can be linked to neighbouring servers, so that a channel
spans several servers.

It needs a POSIX system: the client puts the terminal into unbuffered mode
through `termios`.

## Installing

    pip install .

## Running a server

    duckchat-server HOST PORT [PEER_HOST PEER_PORT ...]

The first pair is the IPv4 address the server binds to. Every further pair
names a neighbouring server. A host without a port, or fewer than two
arguments, prints a usage line and exits with status 1.

What the server does:

- It keeps the users that have logged in, keyed by the address they log in
  from, and the channels with their members. A channel is created by its first
  join and removed once its last member leaves or logs out.
- When one of its users joins a channel it is not yet subscribed to, it
  subscribes and sends a server-to-server join to every neighbour. A join
  received from a neighbour is passed on to the other neighbours in the same
  way.
- Every second a clock advances. Each of the server's own subscriptions is
  renewed with its neighbours every 60 seconds; a neighbour's subscription that
  has not been renewed within 120 seconds is dropped.
- A message said by a local user goes to every local member of the channel
  (the sender included) and to every neighbour subscribed to it, tagged with a
  random identifier. The last 50 identifiers are remembered; a message seen
  again is treated as a loop, and the server unsubscribes and sends a leave back
  to the neighbour it came from. It does the same when it has neither local
  members nor other subscribed neighbours to pass a message to.
- Packets of the wrong length for their type are logged; for client requests
  an error text is sent back to the sender.

Each server logs what it receives and sends to standard output.

## Running a client

    duckchat-client SERVER_HOST SERVER_PORT USERNAME

With a wrong number of arguments it prints a usage line and exits. Otherwise
it logs in and joins the channel `Common`, which becomes the active channel.
Anything typed that does not start with `/` is said on the active channel.
Commands:

| Command            | Effect                                                    |
|--------------------|-----------------------------------------------------------|
| `/exit`            | log out and quit                                          |
| `/join CHANNEL`    | join a channel and make it active                         |
| `/leave CHANNEL`   | leave a channel; if it was active, no channel is active   |
| `/list`            | list the channels that exist on the server                |
| `/who CHANNEL`     | list the users on a channel                               |
| `/switch CHANNEL`  | make a channel you have joined the active one             |

A command with the wrong number of arguments prints `*Unknown command`; an
unrecognised command prints `*Unknown Command`. Usernames and channel names
are limited to 31 bytes and messages to 63. Incoming messages are printed above
the line being typed, which is then redrawn.

## Using the library

- `duckchat.protocol` holds the wire format. `encode` turns a message such as
  `JoinRequest`, `S2SSay` or `TextWho` into bytes; `decode_request` and
  `decode_text` turn bytes back into messages. They raise `PacketSizeError`
  for a packet of the wrong length and `ProtocolError` for one they cannot
  read. `RequestType` and `TextType` list the packet types.
- `duckchat.router.ChatServer` holds a server's whole logic without any socket:
  `handle(data, address)` and `tick()` return a list of `Outgoing` items, each
  a message and the address to send it to (its `data` property gives the bytes).
- `duckchat.federation.Federation` is the part that deals with neighbouring
  servers; `duckchat.registry` has the tables it and the router use
  (`UserTable`, `ChannelTable`, `Neighbour`, `IdentifierRing`).
- `duckchat.session.ChatSession` holds a client's logic: `handle_line(line)`
  returns the requests to send and the notices to show, and `render(data)` the
  lines to show for a packet from the server. `duckchat.client.LineEditor`
  collects typed characters into lines.
- `duckchat.terminal.raw_mode(stream)` is a context manager that turns off echo
  and line buffering on a terminal and restores them afterwards.
- `duckchat.server.run(host, port, peers)` and `duckchat.client.run(host, port,
  username)` start the server and the client from Python.

## What it does not do

- Keep-alive requests are understood on the wire but not used: clients never
  send them and the server never logs out silent clients. A keep-alive that
  reaches the server is logged as an unknown packet.
- Nothing is stored; users, channels and subscriptions live only as long as
  the server runs.
- Only IPv4 is supported.

## Tests

    pip install .[test]
    pytest