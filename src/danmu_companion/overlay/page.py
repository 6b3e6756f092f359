"""Overlay page served to the OBS browser source."""

OVERLAY_HTML = '''<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Danmu Companion Overlay</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            background: transparent;
            font-family: 'Microsoft YaHei', 'PingFang SC', sans-serif;
            overflow: hidden;
        }

        .ticker {
            position: fixed;
            top: 20px;
            left: 20px;
            width: 360px;
            font-size: 16px;
            color: #fff;
            text-shadow: 0 0 4px rgba(0, 0, 0, 0.8);
        }

        .ticker .row { margin-bottom: 4px; opacity: 0.9; }
        .ticker .row .who { color: #8fd3ff; margin-right: 6px; }

        .reply {
            position: fixed;
            bottom: 40px;
            left: 50%;
            transform: translateX(-50%);
            width: 90%;
            max-width: 960px;
            padding: 12px 24px;
            text-align: center;
            border-radius: 12px;
            background: rgba(20, 20, 30, 0.6);
            opacity: 0;
            transition: opacity 0.3s ease-out;
        }

        .reply.visible { opacity: 1; }

        .reply .to { font-size: 18px; color: #a0e8ff; margin-bottom: 6px; }
        .reply .text { font-size: 34px; color: #ffffff; line-height: 1.4; min-height: 1.4em; }
    </style>
</head>
<body>
    <div class="ticker" id="ticker"></div>
    <div class="reply" id="reply">
        <div class="to" id="replyTo"></div>
        <div class="text" id="replyText"></div>
    </div>

    <script>
        const ticker = document.getElementById('ticker');
        const reply = document.getElementById('reply');
        const replyTo = document.getElementById('replyTo');
        const replyText = document.getElementById('replyText');
        const synth = window.speechSynthesis;
        const MAX_TICKER_ROWS = 8;

        let ws = null;

        function send(message) {
            if (ws && ws.readyState === WebSocket.OPEN) {
                ws.send(JSON.stringify(message));
            }
        }

        function reportVoices() {
            if (!synth) return;
            const voices = synth.getVoices().map(v => ({
                name: v.name, lang: v.lang, localService: v.localService, default: v.default,
            }));
            send({ type: 'voices', voices });
        }

        function speak(data) {
            if (!synth) {
                send({ type: 'speech_end', id: data.id, error: 'speechSynthesis unsupported' });
                return;
            }
            synth.cancel();
            const utterance = new SpeechSynthesisUtterance(data.text);
            utterance.lang = data.lang || 'zh-CN';
            utterance.rate = data.rate ?? 1.0;
            utterance.pitch = data.pitch ?? 1.0;
            utterance.volume = data.volume ?? 1.0;
            if (data.voice) {
                const match = synth.getVoices().find(v => v.name === data.voice);
                if (match) utterance.voice = match;
            }
            utterance.onend = () => send({ type: 'speech_end', id: data.id });
            utterance.onerror = (e) => send({ type: 'speech_end', id: data.id, error: e.error || 'error' });
            synth.speak(utterance);
        }

        function addTickerRow(data) {
            const row = document.createElement('div');
            row.className = 'row';
            const who = document.createElement('span');
            who.className = 'who';
            who.textContent = data.display_name;
            row.appendChild(who);
            row.appendChild(document.createTextNode(data.text));
            ticker.appendChild(row);
            while (ticker.children.length > MAX_TICKER_ROWS) {
                ticker.removeChild(ticker.firstChild);
            }
        }

        function connect() {
            ws = new WebSocket(`ws://${window.location.host}/ws`);

            ws.onopen = () => {
                console.log('Connected to overlay server');
                reportVoices();
            };

            ws.onmessage = (event) => {
                const data = JSON.parse(event.data);
                if (data.type === 'response') {
                    replyTo.textContent = data.username ? '@' + data.username : '';
                    replyText.textContent = data.response || '';
                    reply.classList.add('visible');
                } else if (data.type === 'typing') {
                    replyText.textContent = data.text;
                } else if (data.type === 'hide') {
                    reply.classList.remove('visible');
                } else if (data.type === 'event') {
                    addTickerRow(data);
                } else if (data.type === 'speak') {
                    speak(data);
                } else if (data.type === 'cancel_speech') {
                    if (synth) synth.cancel();
                }
            };

            ws.onclose = () => {
                console.log('Disconnected, reconnecting in 3s...');
                setTimeout(connect, 3000);
            };

            ws.onerror = () => ws.close();
        }

        if (synth) {
            synth.onvoiceschanged = reportVoices;
        }

        connect();
    </script>
</body>
</html>'''
